"""Shared test fixtures for psfx."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from psfx.expander.engine import DeltaExpander
from psfx_testing import BlobBuilder, FakeDecoder

if TYPE_CHECKING:
    from pathlib import Path


@pytest.fixture
def fake_decoder() -> FakeDecoder:
    return FakeDecoder()


@pytest.fixture
def expander(fake_decoder: FakeDecoder) -> DeltaExpander:
    return DeltaExpander(
        decoder=fake_decoder,
        verify_source_hash=True,
        verify_output_hash=True,
        atomic_writes=True,
    )


@pytest.fixture
def builder() -> BlobBuilder:
    return BlobBuilder(lead=b"\xff" * 16)


@pytest.fixture
def output_dir(tmp_path: Path) -> Path:
    out = tmp_path / "out"
    out.mkdir()
    return out
