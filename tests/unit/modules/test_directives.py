"""Tests for the directive scanner."""

import logging

from dolly.modules.directives import (
    Malformed,
    SubmoduleDeclared,
    TopModuleOverride,
    parse_directive,
    scan_file,
    scan_lines,
    select_top_module,
)


class TestParseDirective:
    """Single-line matching rules."""

    def test_submodule(self):
        assert parse_directive("//!submodule another_module", 3) == SubmoduleDeclared("another_module", 3)

    def test_topmodule(self):
        assert parse_directive("//!topmodule mkSimple_tb", 1) == TopModuleOverride("mkSimple_tb", 1)

    def test_extra_whitespace_and_trailing_text(self):
        """Only the first whitespace-delimited token is the argument."""
        event = parse_directive("   //!submodule   foo    trailing words", 7)
        assert event == SubmoduleDeclared("foo", 7)

    def test_directive_after_code(self):
        event = parse_directive("import Foo::*; //!submodule Foo", 2)
        assert event == SubmoduleDeclared("Foo", 2)

    def test_plain_comment_is_ignored(self):
        assert parse_directive("// submodule foo", 1) is None
        assert parse_directive("module mkFoo(Empty);", 1) is None

    def test_longer_keyword_is_not_a_directive(self):
        assert parse_directive("//!submodules foo", 1) is None

    def test_missing_argument_is_malformed(self):
        event = parse_directive("//!submodule", 4)
        assert isinstance(event, Malformed)
        assert event.kind == "submodule"
        assert event.line == 4

    def test_whitespace_only_argument_is_malformed(self):
        assert isinstance(parse_directive("//!topmodule    ", 1), Malformed)

    def test_invalid_identifier_is_malformed(self):
        assert isinstance(parse_directive("//!submodule foo-bar", 1), Malformed)


class TestScan:
    """Event streams over whole files."""

    def test_events_in_line_order(self):
        lines = [
            "//!submodule b",
            "package A;",
            "//!topmodule mkA",
            "//!submodule",
            "//!submodule a",
        ]
        events = list(scan_lines(lines))
        assert events == [
            SubmoduleDeclared("b", 1),
            TopModuleOverride("mkA", 3),
            Malformed("submodule", 4, "//!submodule"),
            SubmoduleDeclared("a", 5),
        ]

    def test_scan_file(self, tmp_path):
        source = tmp_path / "Top.bsv"
        source.write_text("//!submodule child\npackage Top;\nendpackage\n")
        assert scan_file(source) == [SubmoduleDeclared("child", 1)]


class TestSelectTopModule:
    def test_none_declared(self, tmp_path):
        assert select_top_module([SubmoduleDeclared("x", 1)], tmp_path / "a.bsv") is None

    def test_single_override(self, tmp_path):
        assert select_top_module([TopModuleOverride("mkA", 2)], tmp_path / "a.bsv") == "mkA"

    def test_multiple_overrides_fall_back_with_warning(self, tmp_path, caplog):
        events = [TopModuleOverride("mkA", 1), TopModuleOverride("mkB", 2)]
        with caplog.at_level(logging.WARNING):
            assert select_top_module(events, tmp_path / "a.bsv") is None
        assert "Multiple top modules" in caplog.text
