"""Unit tests for pagestamp.editor."""

from __future__ import annotations

import pytest

from pagestamp.analyzer import classify
from pagestamp.editor import append, new_block, patch, plan_edit
from pagestamp.models import InsertBefore, Replace, Shape, Skip, Stamp


@pytest.fixture()
def stamp() -> Stamp:
    return Stamp(
        create_key="created", update_key="updated", created="2024-01-01", updated="2024-01-02"
    )


def _evaluate(content: str, stamp: Stamp):
    shape = classify(content, stamp.create_key, stamp.update_key, stamp.updated)
    return plan_edit(shape, content, stamp)


class TestScenarios:
    def test_property_block_gets_both_lines(self, stamp: Stamp) -> None:
        edit = _evaluate("title:: Foo", stamp)
        assert edit == Replace(
            content="title:: Foo\ncreated:: [[2024-01-01]]\nupdated:: [[2024-01-02]]\n"
        )

    def test_plain_block_gets_new_sibling(self, stamp: Stamp) -> None:
        edit = _evaluate("Some notes here", stamp)
        assert edit == InsertBefore(content="created:: [[2024-01-01]]\nupdated:: [[2024-01-02]]\n")

    def test_stale_updated_line_is_rewritten(self, stamp: Stamp) -> None:
        edit = _evaluate("created:: [[2024-01-01]]\nupdated:: [[2024-01-01]]\n", stamp)
        assert edit == Replace(content="created:: [[2024-01-01]]\nupdated:: [[2024-01-02]]\n")

    def test_current_block_is_skipped(self, stamp: Stamp) -> None:
        edit = _evaluate("created:: [[2024-01-01]]\nupdated:: [[2024-01-02]]\n", stamp)
        assert edit == Skip()


class TestPatch:
    def test_created_line_never_replaced(self, stamp: Stamp) -> None:
        content = "created:: [[2020-05-05]]\nupdated:: [[2020-05-06]]"
        assert patch(content, stamp) == "created:: [[2020-05-05]]\nupdated:: [[2024-01-02]]"

    def test_missing_updated_line_is_appended(self, stamp: Stamp) -> None:
        content = "title:: Foo\ncreated:: [[2020-05-05]]"
        assert patch(content, stamp) == (
            "title:: Foo\ncreated:: [[2020-05-05]]\nupdated:: [[2024-01-02]]\n"
        )

    def test_missing_created_line_appended_after_updated_handling(self, stamp: Stamp) -> None:
        content = "updated:: [[2023-12-31]]\ntitle:: Foo\n"
        assert patch(content, stamp) == (
            "updated:: [[2024-01-02]]\ntitle:: Foo\ncreated:: [[2024-01-01]]\n"
        )

    def test_only_first_updated_line_rewritten(self, stamp: Stamp) -> None:
        content = "updated:: [[a]]\nupdated:: [[b]]\ncreated:: [[2020-01-01]]\n"
        assert patch(content, stamp) == (
            "updated:: [[2024-01-02]]\nupdated:: [[b]]\ncreated:: [[2020-01-01]]\n"
        )

    def test_other_lines_preserved_in_order(self, stamp: Stamp) -> None:
        content = "alias:: X\ncreated:: [[2020-01-01]]\n  tags:: a, b\nupdated:: old\nicon:: *\n"
        result = patch(content, stamp)
        assert result == (
            "alias:: X\ncreated:: [[2020-01-01]]\n  tags:: a, b\n"
            "updated:: [[2024-01-02]]\nicon:: *\n"
        )

    def test_crlf_preserved(self, stamp: Stamp) -> None:
        content = "created:: [[2020-01-01]]\r\nupdated:: [[2020-01-01]]\r\n"
        assert patch(content, stamp) == "created:: [[2020-01-01]]\r\nupdated:: [[2024-01-02]]\r\n"

    def test_indent_of_updated_line_kept(self, stamp: Stamp) -> None:
        assert patch("  updated:: x\ncreated:: [[c]]", stamp) == (
            "  updated:: [[2024-01-02]]\ncreated:: [[c]]"
        )


class TestAppend:
    def test_preserves_every_original_line(self, stamp: Stamp) -> None:
        content = "title:: Foo\n\nalias:: Bar\ntags:: x, y"
        result = append(content, stamp)
        assert result.startswith(content + "\n")
        assert result.removeprefix(content + "\n") == (
            "created:: [[2024-01-01]]\nupdated:: [[2024-01-02]]\n"
        )

    def test_terminated_content_gets_no_extra_blank_line(self, stamp: Stamp) -> None:
        assert append("title:: Foo\n", stamp) == (
            "title:: Foo\ncreated:: [[2024-01-01]]\nupdated:: [[2024-01-02]]\n"
        )

    def test_crlf_block_appends_crlf(self, stamp: Stamp) -> None:
        assert append("title:: Foo\r\n", stamp) == (
            "title:: Foo\r\ncreated:: [[2024-01-01]]\r\nupdated:: [[2024-01-02]]\r\n"
        )


class TestPlanEdit:
    def test_new_block_content(self, stamp: Stamp) -> None:
        assert new_block(stamp) == "created:: [[2024-01-01]]\nupdated:: [[2024-01-02]]\n"

    def test_custom_keys(self) -> None:
        custom = Stamp(create_key="born", update_key="touched", created="A", updated="B")
        edit = plan_edit(Shape.PLAIN_BLOCK, "prose", custom)
        assert edit == InsertBefore(content="born:: [[A]]\ntouched:: [[B]]\n")

    def test_patched_block_is_then_current(self, stamp: Stamp) -> None:
        first = _evaluate("updated:: [[old]]", stamp)
        assert isinstance(first, Replace)
        assert _evaluate(first.content, stamp) == Skip()

    def test_longer_key_is_patched_not_rewritten(self, stamp: Stamp) -> None:
        first = _evaluate("last-updated:: [[2023-01-01]]", stamp)
        assert first == Replace(
            content="last-updated:: [[2023-01-01]]\n"
            "updated:: [[2024-01-02]]\ncreated:: [[2024-01-01]]\n"
        )
        assert _evaluate(first.content, stamp) == Skip()

    def test_appended_block_is_then_current(self, stamp: Stamp) -> None:
        first = _evaluate("title:: Foo", stamp)
        assert isinstance(first, Replace)
        assert _evaluate(first.content, stamp) == Skip()
