"""
stv-gateway: unit tests for the file tokenizer and the mapping-file validator

File: tests/unit/validation/test_file_and_mapping_validators.py

Purpose
- Validate byte-size ceilings, significant-line extraction and mapping counts.
"""

from __future__ import annotations

import pytest

from stv_gateway.config.settings import MappingFileLimits
from stv_gateway.constants import UNLIMITED
from stv_gateway.domain.errors import FileSizeError, GatewayError, MaxNumberExceededError
from stv_gateway.validation.file_validator import FileValidator
from stv_gateway.validation.mapping_file import MappingFileValidator

try:
    from hypothesis import given
    from hypothesis import strategies as st

    HYPOTHESIS_AVAILABLE = True
except ModuleNotFoundError:
    HYPOTHESIS_AVAILABLE = False


def test_size_at_ceiling_passes_and_above_fails() -> None:
    FileValidator("model", "abcd", 4).validate()

    with pytest.raises(GatewayError) as excinfo:
        FileValidator("model", "abcde", 4).validate()

    assert excinfo.value.kind == FileSizeError(file_id="model", actual_size=5, max_size=4)


def test_size_is_measured_in_utf8_bytes() -> None:
    validator = FileValidator("model", "żółw", 4)

    assert validator.size_bytes == 7
    with pytest.raises(GatewayError):
        validator.validate()


def test_unlimited_size() -> None:
    FileValidator("model", "x" * 100_000, UNLIMITED).validate()


def test_significant_lines_trim_and_drop_comments() -> None:
    content = "  first  \r\n\n% comment\n   %indented comment\n\tsecond\n   \n"

    assert FileValidator("model", content, UNLIMITED).significant_lines == ("first", "second")


@pytest.mark.parametrize("separator", ["\x0c", "\x1c", "\x85", "\u2028"])
def test_only_newline_separates_lines(separator: str) -> None:
    content = f"a -> b{separator}c -> d\nsecond"

    validator = FileValidator("model", content, UNLIMITED)

    assert validator.significant_lines == (f"a -> b{separator}c -> d", "second")


def test_form_feed_does_not_add_mappings() -> None:
    content = "a -> b\x0cc -> d\n"
    validator = MappingFileValidator(content, MappingFileLimits(max_number_of_mappings=1))

    validator.validate()

    assert validator.number_of_mappings == 1


def test_mapping_count_at_ceiling_passes() -> None:
    content = "a -> b\nc -> d\n% e -> f\n"

    MappingFileValidator(content, MappingFileLimits(max_number_of_mappings=2)).validate()


def test_mapping_count_above_ceiling_fails() -> None:
    content = "a -> b\nc -> d\ng -> h\nnot a mapping\n"

    with pytest.raises(GatewayError) as excinfo:
        MappingFileValidator(content, MappingFileLimits(max_number_of_mappings=2)).validate()

    assert excinfo.value.kind == MaxNumberExceededError(
        metric_name="numberOfMappings", actual_value=3, max_value=2
    )


def test_mapping_file_size_uses_mapping_id() -> None:
    limits = MappingFileLimits(max_file_size_bytes=3)

    with pytest.raises(GatewayError) as excinfo:
        MappingFileValidator("a -> b", limits).validate()

    assert excinfo.value.kind == FileSizeError(file_id="mapping", actual_size=6, max_size=3)


if HYPOTHESIS_AVAILABLE:

    @given(
        lines=st.lists(
            st.text(alphabet=st.characters(blacklist_categories=("Cs",)), max_size=30),
            max_size=20,
        )
    )
    def test_significant_lines_are_trimmed_nonblank_and_uncommented(lines: list[str]) -> None:
        validator = FileValidator("model", "\n".join(lines), UNLIMITED)

        for line in validator.significant_lines:
            assert line == line.strip()
            assert line
            assert not line.startswith("%")
