"""Write generated property files.

Supported formats are Java-style ``.properties``, JSON and YAML. Output is
sorted and timestamp-free, and a file whose bytes would not change is left
untouched so that its modification time stays stable between builds.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Mapping, Union

import yaml

from gitprops.config.typed_models import OutputFormat
from gitprops.exceptions import PropertyFileError

logger = logging.getLogger(__name__)

_ESCAPES = {
    "\\": "\\\\",
    "\t": "\\t",
    "\n": "\\n",
    "\r": "\\r",
    "\f": "\\f",
    "=": "\\=",
    ":": "\\:",
    "#": "\\#",
    "!": "\\!",
}


def _escape(text: str, is_key: bool, escape_unicode: bool) -> str:
    out = []
    for index, char in enumerate(text):
        if char == " " and (is_key or index == 0):
            out.append("\\ ")
        elif char in _ESCAPES:
            out.append(_ESCAPES[char])
        elif escape_unicode and (ord(char) < 0x20 or ord(char) > 0x7E):
            if ord(char) > 0xFFFF:
                # Surrogate pair, as Java would store it
                encoded = char.encode("utf-16-be")
                out.append(f"\\u{encoded[:2].hex().upper()}\\u{encoded[2:].hex().upper()}")
            else:
                out.append(f"\\u{ord(char):04X}")
        else:
            out.append(char)
    return "".join(out)


def render_properties(properties: Mapping[str, str], escape_unicode: bool = False) -> str:
    lines = [
        f"{_escape(key, True, escape_unicode)}={_escape(value, False, escape_unicode)}"
        for key, value in sorted(properties.items())
    ]
    return "\n".join(lines) + ("\n" if lines else "")


def render(properties: Mapping[str, str], output_format: OutputFormat, escape_unicode: bool = False) -> str:
    fmt = OutputFormat(output_format)
    ordered = dict(sorted(properties.items()))
    if fmt is OutputFormat.properties:
        return render_properties(ordered, escape_unicode=escape_unicode)
    if fmt is OutputFormat.json:
        return json.dumps(ordered, indent=2, ensure_ascii=escape_unicode) + "\n"
    return yaml.safe_dump(ordered, allow_unicode=not escape_unicode, default_flow_style=False, sort_keys=True)


def write_properties(
    properties: Mapping[str, str],
    path: Union[str, Path],
    output_format: OutputFormat = OutputFormat.properties,
    encoding: str = "utf-8",
    escape_unicode: bool = False,
) -> bool:
    """Write ``properties`` to ``path``.

    The existing file is compared byte for byte, so a file written with a
    different encoding is simply replaced.

    Returns:
        True if the file was (re)written, False if it already held the same bytes
    """
    target = Path(path)
    try:
        content = render(properties, output_format, escape_unicode=escape_unicode)
    except ValueError as exc:
        raise PropertyFileError(
            "Unsupported output format", file_path=str(target), output_format=str(output_format), original_error=exc
        ) from exc

    try:
        data = content.encode(encoding)
        if target.exists() and target.read_bytes() == data:
            logger.debug(f"Property file {target} is unchanged; not rewriting")
            return False
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(data)
    except (OSError, UnicodeError) as exc:
        raise PropertyFileError(
            "Failed to write property file",
            file_path=str(target),
            output_format=OutputFormat(output_format).value,
            original_error=exc,
        ) from exc

    logger.info(f"Wrote {len(properties)} properties to {target}")
    return True
