"""Mapping-file (bisimulation specification) validator."""

from __future__ import annotations

from typing import Final

from stv_gateway.config.settings import MappingFileLimits
from stv_gateway.constants import MAPPING_FILE_ID, UNLIMITED
from stv_gateway.domain.errors import GatewayError, MaxNumberExceededError
from stv_gateway.validation.file_validator import FileValidator

_MAPPING_ARROW: Final[str] = "->"


class MappingFileValidator(FileValidator):
    def __init__(
        self,
        content: str,
        limits: MappingFileLimits,
        *,
        file_id: str = MAPPING_FILE_ID,
    ) -> None:
        super().__init__(file_id, content, limits.max_file_size_bytes)
        self.limits = limits

    @property
    def number_of_mappings(self) -> int:
        return sum(1 for line in self.significant_lines if _MAPPING_ARROW in line)

    def validate(self) -> None:
        super().validate()
        maximum = self.limits.max_number_of_mappings
        actual = self.number_of_mappings
        if maximum != UNLIMITED and actual > maximum:
            raise GatewayError(
                MaxNumberExceededError(
                    metric_name="numberOfMappings",
                    actual_value=actual,
                    max_value=maximum,
                )
            )


__all__ = ["MappingFileValidator"]
