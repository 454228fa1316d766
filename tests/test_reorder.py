"""
Reorder Resolver Tests

Pure re-stacking of one bay's occupied cells.
"""

from timber_backend.contracts import cell_identity
from timber_backend.contracts.base import LEVELS
from timber_backend.normalization import build_empty_bay
from timber_frontend.state.reorder import (
    move_to_top, occupied_cells, resolve_bay_order, stack_cells,
)

from .fixtures import stacked_bay_matrix


def column_with_gaps():
    """B01 cells spread over L02, L05 and L09."""
    source = stacked_bay_matrix()["B01"]
    column = build_empty_bay()
    column["L02"] = dict(source["L01"], level="L02")
    column["L05"] = dict(source["L02"], level="L05")
    column["L09"] = dict(source["L03"], level="L09")
    return column


def bundles(column):
    return [cell["bundle"] if cell else None for cell in (column[lvl] for lvl in LEVELS)]


class TestResolveBayOrder:

    def test_explicit_order(self):
        column = stacked_bay_matrix()["B01"]
        ids = [cell_identity(column[lvl]) for lvl in ("L02", "L03", "L01")]

        result = resolve_bay_order("B01", column, ids)

        assert bundles(result)[:3] == ["second", "third", "first"]
        assert result["L01"]["level"] == "L01"
        assert result["L01"]["updated_at"] == column["L02"]["updated_at"]

    def test_gaps_are_compacted_from_bottom(self):
        column = column_with_gaps()
        ids = [cell_identity(c) for c in occupied_cells(column)]

        result = resolve_bay_order("B01", column, ids)

        assert bundles(result) == ["first", "second", "third"] + [None] * 7

    def test_shorter_list_appends_unlisted_in_prior_order(self):
        column = stacked_bay_matrix()["B01"]
        result = resolve_bay_order("B01", column, [cell_identity(column["L02"])])

        assert bundles(result)[:3] == ["second", "first", "third"]

    def test_unknown_and_repeated_identities_ignored(self):
        column = stacked_bay_matrix()["B01"]
        id3 = cell_identity(column["L03"])

        result = resolve_bay_order("B01", column, ["nope", id3, id3, "B01::L01::old"])

        assert bundles(result)[:4] == ["third", "first", "second", None]

    def test_empty_bay_yields_all_null_column(self):
        result = resolve_bay_order("B06", build_empty_bay(), ["x", "y"])
        assert result == build_empty_bay()

    def test_only_level_changes(self):
        column = stacked_bay_matrix()["B01"]
        ids = [cell_identity(column[lvl]) for lvl in ("L03", "L01", "L02")]

        result = resolve_bay_order("B01", column, ids)

        moved = result["L02"]
        original = column["L01"]
        assert {k: v for k, v in moved.items() if k != "level"} == {
            k: v for k, v in original.items() if k != "level"
        }

    def test_input_column_is_not_mutated(self):
        column = stacked_bay_matrix()["B01"]
        snapshot = {lvl: dict(c) if c else None for lvl, c in column.items()}
        resolve_bay_order("B01", column, [cell_identity(column["L03"])])
        assert column == snapshot

    def test_cells_sharing_an_identity_are_both_kept(self):
        column = stacked_bay_matrix()["B01"]
        column["L02"] = dict(
            column["L02"], level="L01", updated_at=column["L01"]["updated_at"]
        )
        assert cell_identity(column["L01"]) == cell_identity(column["L02"])

        result = resolve_bay_order("B01", column, [])

        assert len(occupied_cells(result)) == 3


class TestMoveToTop:

    def test_bottom_cell_moves_to_top(self):
        column = stacked_bay_matrix()["B01"]
        result = move_to_top("B01", column, "L01")
        assert bundles(result)[:4] == ["second", "third", "first", None]

    def test_top_cell_stays(self):
        column = stacked_bay_matrix()["B01"]
        result = move_to_top("B01", column, "L03")
        assert bundles(result)[:3] == ["first", "second", "third"]

    def test_missing_level_leaves_column_unchanged(self):
        column = column_with_gaps()
        assert move_to_top("B01", column, "L01") == column


class TestStackCells:

    def test_bay_tag_is_forced(self):
        column = stacked_bay_matrix("B02")["B02"]
        result = stack_cells("B03", occupied_cells(column))
        assert {c["bay"] for c in occupied_cells(result)} == {"B03"}
