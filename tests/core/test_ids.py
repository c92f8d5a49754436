"""Tests for identifier generation."""

from __future__ import annotations

from rescuesync.core.ids import generate_id, id_timestamp


class TestGenerateId:
    """Tests for generate_id."""

    def test_format(self) -> None:
        identifier = generate_id()
        assert len(identifier) == 32
        int(identifier, 16)  # hex only

    def test_unique(self) -> None:
        ids = {generate_id() for _ in range(1000)}
        assert len(ids) == 1000

    def test_time_ordered(self) -> None:
        """Ids generated later should sort after earlier ones."""
        earlier = generate_id(now=1700000000.0)
        later = generate_id(now=1700000000.002)
        assert earlier < later

    def test_embedded_timestamp(self) -> None:
        identifier = generate_id(now=1700000000.5)
        assert abs(id_timestamp(identifier) - 1700000000.5) < 0.002
