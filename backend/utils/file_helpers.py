import os
import re

SIZE_UNITS = ["Bytes", "KB", "MB", "GB", "TB"]
MAX_NAME_LENGTH = 255

CONTROL_CHARACTERS = re.compile(r"[\x00-\x1f\x7f]")


def format_file_size(size: int) -> str:
    """Human readable size, e.g. 1536 -> "1.5 KB"."""
    if size <= 0:
        return "0 Bytes"
    exponent = 0
    while size >= 1024 ** (exponent + 1) and exponent < len(SIZE_UNITS) - 1:
        exponent += 1
    value = round(size / 1024 ** exponent, 2)
    return f"{value:g} {SIZE_UNITS[exponent]}"


def is_image(mime_type: str) -> bool:
    return bool(mime_type) and mime_type.startswith("image/")


def is_pdf(mime_type: str) -> bool:
    return mime_type == "application/pdf"


def base_mime_type(content_type: str) -> str:
    """Drop parameters from a content type: "text/plain; charset=utf-8" -> "text/plain"."""
    return content_type.split(";")[0].strip().lower()


def has_control_characters(name: str) -> bool:
    return CONTROL_CHARACTERS.search(name) is not None


def numbered_name(filename: str, counter: int, max_length: int = MAX_NAME_LENGTH) -> str:
    """
    Insert " (n)" before the extension: ("report.pdf", 1) -> "report (1).pdf".

    The base name is shortened so the result never exceeds ``max_length``.
    """
    base_name, extension = os.path.splitext(filename)
    suffix = f" ({counter}){extension}"
    if len(suffix) > max_length:
        suffix = f" ({counter})"
    return f"{base_name[:max(max_length - len(suffix), 0)]}{suffix}"
