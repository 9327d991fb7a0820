"""PEM block decoding.

Mirrors the usual PEM framing rules: a block starts at a
``-----BEGIN <TYPE>-----`` line, may carry ``Key: value`` headers followed
by a blank line, holds base64 data and ends at the matching
``-----END <TYPE>-----`` line. Anything after the end line is returned as
``rest`` so callers can reject files with more than one block.
"""

from __future__ import annotations

import base64
import binascii
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from mfa_server.domain.errors import ConfigIOError, InvalidPEMError

_PEM_BLOCK_RE = re.compile(
    rb"-----BEGIN (?P<type>[^\r\n]*?)-----[ \t]*\r?\n"
    rb"(?P<body>.*?)"
    rb"-----END (?P=type)-----[ \t]*(?:\r?\n|\Z)",
    re.DOTALL,
)


@dataclass(frozen=True)
class PEMBlock:
    """A single decoded PEM block."""
    type: str
    data: bytes
    headers: dict[str, str] = field(default_factory=dict)


def _split_headers(body: bytes) -> tuple[dict[str, str], bytes]:
    lines = body.splitlines()
    if not lines or b":" not in lines[0]:
        return {}, body

    headers: dict[str, str] = {}
    for index, line in enumerate(lines):
        if not line.strip():
            return headers, b"\n".join(lines[index + 1:])
        key, _, value = line.partition(b":")
        headers[key.strip().decode("ascii", "replace")] = value.strip().decode("ascii", "replace")
    # Headers without the blank separator line.
    return {}, body


def decode_pem(data: bytes) -> tuple[Optional[PEMBlock], bytes]:
    """Decode the first PEM block found in ``data``.

    Returns:
        ``(block, rest)``. ``block`` is None when no well-formed block is
        present, in which case ``rest`` is the input unchanged.
    """
    match = _PEM_BLOCK_RE.search(data)
    if match is None:
        return None, data

    headers, body = _split_headers(match.group("body"))
    try:
        der = base64.b64decode(b"".join(body.split()), validate=True)
    except (binascii.Error, ValueError):
        return None, data

    block = PEMBlock(
        type=match.group("type").decode("ascii", "replace"),
        data=der,
        headers=headers,
    )
    return block, data[match.end():]


def read_pem_file(path: str | Path) -> bytes:
    """Read a PEM file fully."""
    try:
        return Path(path).read_bytes()
    except OSError as e:
        raise ConfigIOError(f"Could not read {path}: {e}", path=path) from e


def validate_pem_file(path: str | Path) -> PEMBlock:
    """Check that a file holds exactly one PEM block with a non-empty type.

    Trailing whitespace after the single block is tolerated; any other
    trailing bytes, including a second block, are not.

    Raises:
        ConfigIOError: If the file cannot be read.
        InvalidPEMError: If the file is not exactly one PEM block.
    """
    pem_data = read_pem_file(path)
    block, rest = decode_pem(pem_data)
    if block is None:
        raise InvalidPEMError(f"Not valid PEM format: no PEM block found in {path}", path=path)
    if rest.strip() or not block.type:
        raise InvalidPEMError(
            f"Not valid PEM format in {path}: Rest: {len(rest.strip())} Type: {block.type!r}",
            path=path,
        )
    return block
