"""Receipt image handling for transactions."""

from __future__ import annotations

import base64
import mimetypes
from pathlib import Path
from typing import Union

from .exceptions import InvalidInput

REMOTE_PREFIXES = ('http://', 'https://', 'data:')


def read_image_as_data_url(path: Union[str, Path]) -> str:
    """Read an image file and return it as a base64 ``data:`` URL.

    Args:
        path: Location of the image on disk.

    Returns:
        The encoded payload, e.g. ``data:image/png;base64,iVBOR...``

    Raises:
        InvalidInput: If the file is missing, unreadable or not an image.
    """
    target = Path(path)
    mime, _ = mimetypes.guess_type(target.name)
    if not mime or not mime.startswith('image/'):
        raise InvalidInput(f"{target.name} is not a recognised image file", field="image")
    try:
        payload = target.read_bytes()
    except OSError as exc:
        raise InvalidInput(f"Could not read image {target}: {exc}", field="image") from exc
    encoded = base64.b64encode(payload).decode('ascii')
    return f"data:{mime};base64,{encoded}"


def resolve_image(reference: Union[str, Path]) -> str:
    """Pass URLs through unchanged and encode local files."""
    text = str(reference)
    if text.startswith(REMOTE_PREFIXES):
        return text
    return read_image_as_data_url(reference)
