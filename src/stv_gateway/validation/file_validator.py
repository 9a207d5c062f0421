"""Base validator for client-submitted DSL files: size ceiling and significant lines."""

from __future__ import annotations

from functools import cached_property

from stv_gateway.constants import COMMENT_MARKER, UNLIMITED
from stv_gateway.domain.errors import FileSizeError, GatewayError


class FileValidator:
    """Enforce a byte-size ceiling and expose comment-free, trimmed lines.

    Subclasses parse :attr:`significant_lines` only, so comment and whitespace
    handling lives here and nowhere else.
    """

    def __init__(self, file_id: str, content: str, max_file_size_bytes: int) -> None:
        self.file_id = file_id
        self.content = content
        self.max_file_size_bytes = max_file_size_bytes

    @property
    def size_bytes(self) -> int:
        return len(self.content.encode("utf-8"))

    def validate(self) -> None:
        size = self.size_bytes
        if self.max_file_size_bytes != UNLIMITED and size > self.max_file_size_bytes:
            raise GatewayError(
                FileSizeError(
                    file_id=self.file_id,
                    actual_size=size,
                    max_size=self.max_file_size_bytes,
                )
            )

    @cached_property
    def significant_lines(self) -> tuple[str, ...]:
        return tuple(
            stripped
            for stripped in (line.strip() for line in self.content.split("\n"))
            if stripped and not stripped.startswith(COMMENT_MARKER)
        )


__all__ = ["FileValidator"]
