"""Tests for the mutable board."""

import pytest

from board_parser import format_board, parse_board
from flow_board import Board
from flow_pieces import make_tile
from flow_types import Coord, Direction, Move


def board_from(definition: str) -> Board:
    rows = parse_board(definition)
    board = Board(len(rows[0]), len(rows))
    board.load(rows)
    return board


class TestReads:
    """Tests for bounds-safe reads."""

    def test_out_of_range_reads_are_empty(self) -> None:
        board = board_from("I2 I2|I2 I2")
        assert board.get_cell(-1, 0) is None
        assert board.get_cell(0, 2) is None
        assert board[Coord(5, 5)] is None
        assert board.get_cell(1, 1) == make_tile("I2")

    def test_coords_are_row_major(self) -> None:
        board = Board(2, 2)
        assert list(board.coords()) == [Coord(0, 0), Coord(1, 0), Coord(0, 1), Coord(1, 1)]

    def test_empty_cells(self) -> None:
        board = board_from("I2 _|_ L2")
        assert board.empty_cells() == [Coord(1, 0), Coord(0, 1)]
        assert not board.is_full()

    def test_edge_cells(self) -> None:
        board = Board(3, 2)
        assert board.edge_cells(Direction.L) == [(0, Coord(0, 0)), (1, Coord(0, 1))]
        assert board.edge_cells(Direction.R) == [(0, Coord(2, 0)), (1, Coord(2, 1))]
        assert board.edge_cells(Direction.U) == [(0, Coord(0, 0)), (1, Coord(1, 0)), (2, Coord(2, 0))]
        assert board.edge_cells(Direction.D)[2] == (2, Coord(2, 1))

    def test_edge_index(self) -> None:
        board = Board(3, 2)
        assert board.edge_index(Coord(0, 1), Direction.L) == 1
        assert board.edge_index(Coord(1, 1), Direction.L) is None
        assert board.edge_index(Coord(1, 1), Direction.D) == 1
        assert board.edge_index(Coord(3, 0), Direction.R) is None


class TestWrites:
    """Tests for player mutations."""

    def test_out_of_range_writes_are_ignored(self) -> None:
        board = Board(2, 2)
        board.set_cell(2, 0, make_tile("I2"))
        board[Coord(-1, -1)] = make_tile("I2")
        assert board.is_full() is False
        assert len(board.empty_cells()) == 4

    def test_load_rejects_wrong_shape(self) -> None:
        board = Board(3, 2)
        with pytest.raises(ValueError, match="Layout does not match board size"):
            board.load(parse_board("I2 I2|I2 I2"))

    def test_rotate_cw(self) -> None:
        board = board_from("L2:3")
        board.rotate_cw(0, 0)
        assert board.get_cell(0, 0) == make_tile("L2", 0)

    def test_rotate_four_times_is_identity(self) -> None:
        board = board_from("T3:1 ARROW:2")
        before = board.rows()
        for _ in range(4):
            board.rotate_cw(0, 0)
            board.rotate_cw(1, 0)
        assert board.rows() == before

    def test_rotate_empty_or_outside_is_noop(self) -> None:
        board = board_from("_ I2")
        board.rotate_cw(0, 0)
        board.rotate_cw(9, 9)
        assert format_board(board.rows()) == "_ I2:0"

    def test_swap(self) -> None:
        board = board_from("I2 L2:1")
        board.swap_cells(Coord(0, 0), Coord(1, 0))
        assert format_board(board.rows()) == "L2:1 I2:0"

    def test_swap_twice_restores(self) -> None:
        board = board_from("I2 _|X4 T3:2")
        before = board.rows()
        board.swap_cells(Coord(1, 0), Coord(0, 1))
        assert board.rows() != before
        board.swap_cells(Coord(0, 1), Coord(1, 0))
        assert board.rows() == before

    def test_swap_outside_or_same_is_noop(self) -> None:
        board = board_from("I2 L2")
        before = board.rows()
        board.swap_cells(Coord(0, 0), Coord(0, 0))
        board.swap_cells(Coord(0, 0), Coord(2, 0))
        assert board.rows() == before


class TestShiftAlongPath:
    """Tests for carrying tiles along a drag path."""

    def test_head_tile_moves_to_tail(self) -> None:
        board = board_from("I2:0 L2:0 T3:0")
        path = [Coord(0, 0), Coord(1, 0), Coord(2, 0)]
        moves = board.shift_along_path(path)
        assert format_board(board.rows()) == "L2:0 T3:0 I2:0"
        assert moves == [
            Move(Coord(1, 0), Coord(0, 0), make_tile("L2")),
            Move(Coord(2, 0), Coord(1, 0), make_tile("T3")),
            Move(Coord(0, 0), Coord(2, 0), make_tile("I2")),
        ]

    def test_path_need_not_be_straight(self) -> None:
        board = board_from("I2 L2|X4 T3")
        board.shift_along_path([Coord(0, 0), Coord(1, 0), Coord(1, 1)])
        assert format_board(board.rows()) == "L2:0 T3:0|X4:0 I2:0"

    @pytest.mark.parametrize(
        "path",
        [
            [Coord(0, 0)],
            [Coord(0, 0), Coord(0, 0)],
            [Coord(0, 0), Coord(1, 0), Coord(0, 0)],
            [Coord(1, 0), Coord(2, 0)],
            [Coord(0, 0), Coord(0, 1)],
            [Coord(0, 0), Coord(0, 1), Coord(1, 1)],
        ],
    )
    def test_rejected_paths_leave_board_untouched(self, path: list[Coord]) -> None:
        board = board_from("I2 L2|_ T3")
        before = board.rows()
        assert board.shift_along_path(path) == []
        assert board.rows() == before


class TestGravity:
    """Tests for clear and gravity."""

    def test_tiles_fall_in_order(self) -> None:
        board = board_from("I2:0 _|_ L2:1|T3:2 _")
        moves = board.apply_gravity()
        assert format_board(board.rows()) == "_ _|I2:0 _|T3:2 L2:1"
        assert moves == [
            Move(Coord(0, 0), Coord(0, 1), make_tile("I2", 0)),
            Move(Coord(1, 1), Coord(1, 2), make_tile("L2", 1)),
        ]

    def test_stacked_column_keeps_order(self) -> None:
        board = board_from("I2:0|L2:0|_|_")
        board.apply_gravity()
        assert format_board(board.rows()) == "_|_|I2:0|L2:0"

    def test_settled_board_has_no_moves(self) -> None:
        board = board_from("_ _|I2 L2")
        assert board.apply_gravity() == []

    def test_clear_cells(self) -> None:
        board = board_from("I2 L2 T3")
        board.clear_cells([Coord(0, 0), Coord(2, 0), Coord(5, 5)])
        assert format_board(board.rows()) == "_ L2:0 _"
