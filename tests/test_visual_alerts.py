# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Tests for visual alert detection (red colors and status dots)."""

from __future__ import annotations

import pytest

from platestatus.extraction.pipeline import parse_html
from platestatus.extraction.visual import (
    FALLBACK_ALERT_LABEL,
    ElementStyle,
    drop_hidden,
    is_visibly_red,
    nearest_label,
    parse_rgb,
    styles_from_scan,
    visual_alerts,
)

RED = ElementStyle(color="rgb(220, 20, 20)")
BLACK = ElementStyle(color="rgb(0, 0, 0)", background="rgba(0, 0, 0, 0)")


def _doc(body: str):
    return parse_html(f"<html><body>{body}</body></html>")


class TestColorBand:
    @pytest.mark.parametrize(
        "value",
        ["rgb(170, 70, 70)", "rgb(255, 0, 0)", "rgba(200, 10, 10, 0.5)", "RGB(220,20,20)"],
    )
    def test_red(self, value):
        assert is_visibly_red(value)

    @pytest.mark.parametrize(
        "value",
        ["rgb(169, 0, 0)", "rgb(200, 71, 0)", "rgb(200, 0, 71)", "rgb(255, 165, 0)", "", "red", "transparent"],
    )
    def test_not_red(self, value):
        assert not is_visibly_red(value)

    def test_parse_rgb(self):
        assert parse_rgb("rgba(1, 22, 333, 0.1)") == (1, 22, 333)
        assert parse_rgb("#ff0000") is None


class TestStylesFromScan:
    def test_rows_indexed(self):
        styles = styles_from_scan([[0, "rgb(1, 2, 3)", ""], [5, "", "rgb(255, 0, 0)"]])
        assert styles == {
            0: ElementStyle("rgb(1, 2, 3)", ""),
            5: ElementStyle("", "rgb(255, 0, 0)"),
        }

    def test_malformed_rows_skipped(self):
        styles = styles_from_scan([None, ["x"], ["a", "b", "c"], [1, None, None]])
        assert styles == {1: ElementStyle("", "")}

    def test_none_input(self):
        assert styles_from_scan(None) == {}

    def test_hidden_flag(self):
        styles = styles_from_scan([[0, "", "", True], [1, "", "", False], [2, "", ""]])
        assert styles[0].hidden
        assert not styles[1].hidden
        assert not styles[2].hidden


class TestDropHidden:
    def test_hidden_subtree_removed_tail_kept(self):
        doc = _doc('<p>antes<span data-ps-idx="0">oculto<b>x</b></span>luego</p>')
        assert drop_hidden(doc, {0: ElementStyle(hidden=True)}) == 1
        assert doc.xpath("string(//p)") == "antesluego"

    def test_nested_hidden_counted_once(self):
        doc = _doc('<div data-ps-idx="0"><p data-ps-idx="1">a</p></div><p>b</p>')
        hidden = ElementStyle(hidden=True)
        assert drop_hidden(doc, {0: hidden, 1: hidden}) == 1
        assert doc.xpath("string(//body)") == "b"

    def test_visible_and_unscanned_kept(self):
        doc = _doc('<p data-ps-idx="0">a</p><p>b</p>')
        assert drop_hidden(doc, {0: BLACK}) == 0
        assert drop_hidden(doc, None) == 0
        assert doc.xpath("string(//body)") == "ab"


class TestNearestLabel:
    def test_preceding_sibling(self):
        doc = _doc('<div><b>Conexión</b><span id="x"></span></div>')
        assert nearest_label(doc.get_element_by_id("x")) == "Conexión"

    def test_own_label_descendant_first(self):
        doc = _doc('<p>Otro</p><div id="x"><strong>Sensor puerta:</strong> abierto</div>')
        assert nearest_label(doc.get_element_by_id("x")) == "Sensor puerta"

    def test_walks_up_to_ancestor(self):
        doc = _doc('<section><h4>Batería</h4><div><div><i id="x"></i></div></div></section>')
        assert nearest_label(doc.get_element_by_id("x")) == "Batería"

    def test_long_sibling_text_is_not_a_label(self):
        long_text = "texto " * 30
        doc = _doc(f'<div><p>{long_text}</p><i id="x">alerta</i></div>')
        assert nearest_label(doc.get_element_by_id("x")) == "alerta"

    def test_fallback_label(self):
        doc = _doc('<i id="x"></i>')
        assert nearest_label(doc.get_element_by_id("x")) == FALLBACK_ALERT_LABEL


class TestVisualAlerts:
    def test_red_text_element(self):
        doc = _doc('<div data-ps-idx="0"><strong>Sensor puerta</strong> abierto</div>')
        assert visual_alerts(doc, {0: RED}).alerts == ["Sensor puerta"]

    def test_red_background(self):
        doc = _doc('<div><b>GPS</b><span data-ps-idx="3">sin señal</span></div>')
        styles = {3: ElementStyle(color="rgb(255, 255, 255)", background="rgb(230, 30, 40)")}
        assert visual_alerts(doc, styles).alerts == ["GPS"]

    def test_plain_colors_no_alert(self):
        doc = _doc('<div data-ps-idx="0"><b data-ps-idx="1">Estado</b> ok</div>')
        assert visual_alerts(doc, {0: BLACK, 1: BLACK}).alerts == []

    def test_status_dot_by_class(self):
        doc = _doc('<div><span class="label">Cámara</span><span class="status-dot"></span></div>')
        assert visual_alerts(doc).alerts == ["Cámara"]

    def test_dot_glyph(self):
        doc = _doc("<div><b>Conexión</b><span>●</span></div>")
        assert visual_alerts(doc).alerts == ["Conexión"]

    def test_scripts_ignored(self):
        doc = _doc("<script>•</script><p>nada</p>")
        assert visual_alerts(doc).alerts == []

    def test_never_produces_fields(self):
        doc = _doc('<div data-ps-idx="0"><strong>Sensor</strong> abierto</div>')
        assert visual_alerts(doc, {0: RED}).fields == {}

    def test_alerts_deduplicated(self):
        doc = _doc('<div data-ps-idx="0"><b>GPS</b><span data-ps-idx="1">x</span></div>')
        assert visual_alerts(doc, {0: RED, 1: RED}).alerts == ["GPS"]
