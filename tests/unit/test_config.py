from pathlib import Path

import pytest
from pydantic import ValidationError

from haystack.config import PileConfig, default_max_workers


def test_pile_config_defaults_to_in_memory() -> None:
    config = PileConfig()

    assert config.connection == ""
    assert config.in_memory is True
    assert config.clone_path is None
    assert config.max_workers == default_max_workers()


def test_pile_config_memory_marker_is_in_memory() -> None:
    assert PileConfig(connection=":memory:").in_memory is True


def test_pile_config_file_path_is_not_in_memory(tmp_path: Path) -> None:
    config = PileConfig(connection=str(tmp_path / "pile.db"))

    assert config.in_memory is False


def test_pile_config_strips_connection() -> None:
    assert PileConfig(connection="  pile.db  ").connection == "pile.db"


def test_pile_config_none_connection_is_in_memory() -> None:
    assert PileConfig(connection=None).in_memory is True


def test_pile_config_rejects_zero_workers() -> None:
    with pytest.raises(ValidationError):
        PileConfig(max_workers=0)


def test_pile_config_rejects_unknown_options() -> None:
    with pytest.raises(ValidationError):
        PileConfig(pool_size=4)


def test_default_max_workers_is_positive() -> None:
    assert default_max_workers() >= 1
