"""Tests for editing.trace_editor — row, color and axis-range editors."""

import numpy as np
import pytest

from editing.trace_editor import (
    ROW_EDITORS,
    TRACE_COLOR_OPTIONS,
    add_cartesian_row,
    add_pie_row,
    build_trace_label,
    coerce_input_value,
    get_trace_array,
    get_trace_color,
    get_trace_type,
    get_y_axis_range,
    remove_cartesian_row,
    remove_pie_row,
    resolve_y_axis_key,
    set_trace_color,
    sync_pie_marker_colors,
    to_input_value,
    update_cartesian_x,
    update_cartesian_y,
    update_pie_label,
    update_pie_value,
    update_y_axis_range,
)

BLUE = "#2563eb"
GREEN = "#16a34a"
RED = "#dc2626"


class TestCoerceInputValue:
    def test_numeric_previous_parses_number(self):
        assert coerce_input_value("42", 1, False) == 42
        assert coerce_input_value("2.5", 1, False) == 2.5

    def test_numeric_previous_cleared_is_empty_string(self):
        assert coerce_input_value("   ", 7, True) == ""

    @pytest.mark.parametrize("partial", ["-", "+", ".", "-.", "+.", "12."])
    def test_partial_numbers_kept_verbatim(self, partial):
        assert coerce_input_value(partial, 5, True) == partial

    def test_numeric_previous_unparseable_kept(self):
        assert coerce_input_value("abc", 5, False) == "abc"

    def test_non_finite_is_not_a_number(self):
        assert coerce_input_value("inf", 5, False) == "inf"
        assert coerce_input_value("nan", None, True) == "nan"

    def test_boolean_previous(self):
        assert coerce_input_value("TRUE", False, True) is True
        assert coerce_input_value("yes", True, True) is False

    def test_prefer_numeric_for_untyped_cells(self):
        assert coerce_input_value("10", None, True) == 10
        assert coerce_input_value("10", "", True) == 10
        assert coerce_input_value("Jan", None, True) == "Jan"

    def test_without_prefer_numeric_text_stays_text(self):
        assert coerce_input_value("10", "Feb", False) == "10"

    def test_bool_is_not_treated_as_numeric_previous(self):
        assert coerce_input_value("", True, True) is False

    def test_numpy_scalar_previous_is_numeric(self):
        assert coerce_input_value("3", np.float64(1.0), False) == 3


class TestToInputValue:
    def test_values(self):
        assert to_input_value(3) == "3"
        assert to_input_value("Jan") == "Jan"
        assert to_input_value(True) == "true"
        assert to_input_value(None) == ""
        assert to_input_value({"a": 1}) == ""


class TestTraceAccessors:
    def test_get_trace_array_copies(self):
        trace = {"x": [1, 2]}
        values = get_trace_array(trace, "x")
        values.append(3)
        assert trace["x"] == [1, 2]

    def test_get_trace_array_non_array(self):
        assert get_trace_array({"x": "abc"}, "x") == []
        assert get_trace_array({}, "x") == []
        assert get_trace_array({"x": np.array([1, 2])}, "x") == [1, 2]

    @pytest.mark.parametrize("type_value,expected", [
        ("pie", "pie"), ("bar", "bar"), ("scatter", "scatter"),
        ("scattergl", "scatter"), ("Bar", "bar"), ("heatmap", None), (None, None),
    ])
    def test_get_trace_type(self, type_value, expected):
        assert get_trace_type({"type": type_value}) == expected

    def test_get_trace_color_order(self):
        assert get_trace_color({"marker": {"color": RED}, "line": {"color": GREEN}}) == RED
        assert get_trace_color({"marker": {"colors": [None, GREEN]}}) == GREEN
        assert get_trace_color({"line": {"color": GREEN}}) == GREEN
        assert get_trace_color({}) is None

    def test_build_trace_label(self):
        assert build_trace_label({"type": "bar", "name": " Revenue "}, 0) == "1. Revenue (bar)"
        assert build_trace_label({"type": "pie"}, 2) == "3. pie"
        assert build_trace_label({}, 0) == "1. trace"


class TestPieRows:
    def test_add_row(self):
        trace = {"type": "pie", "labels": ["A"], "values": [1], "marker": {"colors": [RED]}}
        result = add_pie_row(trace)
        assert result["labels"] == ["A", "Slice 2"]
        assert result["values"] == [1, 0]
        assert result["marker"]["colors"] == [RED, RED]
        assert trace["labels"] == ["A"]

    def test_update_label_and_value(self):
        trace = {"type": "pie", "labels": ["A", "B"], "values": [1, 2]}
        trace = update_pie_label(trace, 1, "Beta")
        trace = update_pie_value(trace, 1, "7.5")
        assert trace["labels"] == ["A", "Beta"]
        assert trace["values"] == [1, 7.5]

    def test_update_beyond_end_pads(self):
        trace = update_pie_value({"type": "pie", "labels": [], "values": []}, 2, "5")
        assert trace["values"] == [None, None, 5]
        assert len(trace["marker"]["colors"]) == 3

    def test_update_negative_index_raises(self):
        with pytest.raises(IndexError):
            update_pie_label({"type": "pie"}, -1, "x")

    def test_remove_row_truncates_colors(self):
        trace = {"type": "pie", "labels": ["A", "B"], "values": [1, 2],
                 "marker": {"color": BLUE, "colors": [RED, GREEN]}}
        result = remove_pie_row(trace, 0)
        assert result["labels"] == ["B"]
        assert result["values"] == [2]
        assert result["marker"]["colors"] == [RED]


class TestSyncPieMarkerColors:
    def test_length_tracks_longest_array(self):
        trace = {"labels": ["A", "B", "C"], "values": [1]}
        result = sync_pie_marker_colors(trace)
        assert result["marker"]["colors"] == [BLUE, BLUE, BLUE]
        assert result["marker"]["color"] == BLUE

    def test_at_least_one_color(self):
        result = sync_pie_marker_colors({"labels": [], "values": []})
        assert result["marker"]["colors"] == [BLUE]

    def test_fallback_prefers_marker_color(self):
        result = sync_pie_marker_colors({"labels": ["A", "B"], "marker": {"color": GREEN}})
        assert result["marker"]["colors"] == [GREEN, GREEN]

    def test_preferred_color_keeps_distinct_slices(self):
        trace = {"labels": ["A", "B", "C"], "values": [1, 2, 3],
                 "marker": {"color": BLUE, "colors": [BLUE, RED, BLUE]}}
        result = sync_pie_marker_colors(trace, GREEN)
        assert result["marker"]["colors"] == [GREEN, RED, GREEN]
        assert result["marker"]["color"] == GREEN

    def test_does_not_mutate_input(self):
        marker = {"colors": [RED]}
        sync_pie_marker_colors({"labels": ["A", "B"], "marker": marker}, GREEN)
        assert marker == {"colors": [RED]}


class TestCartesianRows:
    def test_add_then_remove_categorical(self):
        trace = {"type": "bar", "x": ["Jan"], "y": [3]}
        added = add_cartesian_row(trace)
        assert added["x"] == ["Jan", 2]
        assert added["y"] == [3, 0]
        removed = remove_cartesian_row(added, 0)
        assert removed["x"] == [2]
        assert removed["y"] == [0]
        assert trace == {"type": "bar", "x": ["Jan"], "y": [3]}

    def test_add_to_empty_trace(self):
        added = add_cartesian_row({"type": "scatter"})
        assert added["x"] == [1]
        assert added["y"] == [0]

    def test_add_numeric(self):
        added = add_cartesian_row({"type": "bar", "x": [1, 2], "y": [5, 6]})
        assert added["x"] == [1, 2, 3]
        assert added["y"] == [5, 6, 0]

    def test_add_with_non_numeric_y(self):
        added = add_cartesian_row({"type": "bar", "x": [1], "y": ["high"]})
        assert added["y"] == ["high", ""]

    def test_add_with_unusual_x_entries(self):
        added = add_cartesian_row({"type": "bar", "x": [[1, 2]], "y": [1]})
        assert added["x"] == [[1, 2], ""]

    def test_update_cells(self):
        trace = {"type": "bar", "x": ["Jan", "Feb"], "y": [1, 2]}
        trace = update_cartesian_x(trace, 1, "Mar")
        trace = update_cartesian_y(trace, 0, "10")
        assert trace["x"] == ["Jan", "Mar"]
        assert trace["y"] == [10, 2]

    def test_x_stays_text_for_new_cells(self):
        trace = update_cartesian_x({"type": "bar", "x": [], "y": []}, 0, "5")
        assert trace["x"] == ["5"]

    def test_remove_splices_independently(self):
        result = remove_cartesian_row({"x": [1, 2, 3], "y": [4]}, 2)
        assert result["x"] == [1, 2]
        assert result["y"] == [4]

    def test_scatter_shares_bar_editors(self):
        assert ROW_EDITORS["scatter"] is ROW_EDITORS["bar"]
        assert set(ROW_EDITORS["pie"]) == {"add", "remove", "labels", "values"}


class TestSetTraceColor:
    def test_bar_sets_marker_color(self):
        result = set_trace_color({"type": "bar", "marker": {"opacity": 0.5}}, "bar", GREEN)
        assert result["marker"] == {"opacity": 0.5, "color": GREEN}
        assert "line" not in result

    def test_scatter_sets_marker_and_line(self):
        result = set_trace_color({"type": "scatter", "line": {"width": 2}}, "scatter", RED)
        assert result["marker"]["color"] == RED
        assert result["line"] == {"width": 2, "color": RED}

    def test_pie_resyncs_colors(self):
        result = set_trace_color({"type": "pie", "labels": ["A", "B"]}, "pie", GREEN)
        assert result["marker"]["colors"] == [GREEN, GREEN]

    def test_palette(self):
        assert list(TRACE_COLOR_OPTIONS.values())[0] == BLUE
        assert len(set(TRACE_COLOR_OPTIONS.values())) == len(TRACE_COLOR_OPTIONS)


class TestYAxisRange:
    def test_resolve_axis_key(self):
        assert resolve_y_axis_key({}) == "yaxis"
        assert resolve_y_axis_key({"yaxis": "y"}) == "yaxis"
        assert resolve_y_axis_key({"yaxis": "y2"}) == "yaxis2"

    def test_get_range_unset(self):
        assert get_y_axis_range(None, {}) == [None, None]
        assert get_y_axis_range({"yaxis": {"range": [0, 10]}}, {}) == [0, 10]

    def test_set_min_on_empty_layout(self):
        assert update_y_axis_range(None, {"type": "bar"}, 0, "10") == {"yaxis": {"range": [10, None]}}

    def test_secondary_axis_keeps_title(self):
        layout = {"yaxis2": {"title": {"text": "Right"}}}
        result = update_y_axis_range(layout, {"yaxis": "y2"}, 1, "50")
        assert result == {"yaxis2": {"title": {"text": "Right"}, "range": [None, 50]}}
        assert layout == {"yaxis2": {"title": {"text": "Right"}}}

    def test_clearing_both_bounds_drops_axis(self):
        layout = {"title": {"text": "Demo"}, "yaxis": {"range": [0, 10]}}
        layout = update_y_axis_range(layout, {}, 0, "")
        assert layout["yaxis"] == {"range": [None, 10]}
        layout = update_y_axis_range(layout, {}, 1, "")
        assert layout == {"title": {"text": "Demo"}}

    def test_range_added_then_cleared_leaves_unrelated_entries(self):
        trace = {"type": "scatter", "y": [1, 2]}
        layout = update_y_axis_range({"title": {"text": "Demo"}}, trace, 0, "5")
        layout = update_y_axis_range(layout, trace, 0, "")
        layout = update_y_axis_range(layout, trace, 1, "")
        assert layout == {"title": {"text": "Demo"}}

    def test_clearing_keeps_other_axis_settings(self):
        layout = {"yaxis": {"range": [0, None], "title": "Units"}}
        assert update_y_axis_range(layout, {}, 0, " ") == {"yaxis": {"title": "Units"}}

    def test_bad_boundary(self):
        with pytest.raises(IndexError):
            update_y_axis_range({}, {}, 2, "1")
