"""Tests for comment/string blanking and offset mapping."""

from __future__ import annotations

from safesolidity_mcp.scanner import scan, strip_comments_and_strings


def test_line_comment_blanked():
    src = "a = 1; // tx.origin == owner\nb = 2;"
    out = strip_comments_and_strings(src)
    assert len(out) == len(src)
    assert "tx.origin" not in out
    assert out.split("\n")[1] == "b = 2;"


def test_block_comment_keeps_newlines():
    src = "x /* one\ntwo\nthree */ y"
    out = strip_comments_and_strings(src)
    assert len(out) == len(src)
    assert out.count("\n") == 2
    assert out.startswith("x ")
    assert out.endswith(" y")
    assert "two" not in out


def test_string_contents_blanked_quotes_kept():
    assert strip_comments_and_strings('s = "abc";') == 's = "   ";'
    assert strip_comments_and_strings("s = 'abc';") == "s = '   ';"


def test_escaped_quote_inside_string():
    src = 's = "a\\"b"; t = 1;'
    out = strip_comments_and_strings(src)
    assert len(out) == len(src)
    assert out.endswith("; t = 1;")


def test_comment_markers_inside_string_are_not_comments():
    src = 'url = "http://x"; y = 1;'
    out = strip_comments_and_strings(src)
    assert out.endswith("; y = 1;")


def test_unterminated_block_comment_runs_to_end():
    assert strip_comments_and_strings("a /* b c") == "a       "


def test_unterminated_string_runs_to_end():
    assert strip_comments_and_strings('x = "abc') == 'x = "   '


def test_lines_reconstruct_raw_text():
    src = "line one\r\nline two\n\nlast"
    doc = scan(src)
    assert "\n".join(doc.lines) == src
    assert doc.line_count == 4
    assert len(doc.stripped_text) == len(src)


def test_line_col_mapping():
    doc = scan("ab\ncd\n")
    assert doc.line_col(0) == (1, 1)
    assert doc.line_col(3) == (2, 1)
    assert doc.line_col(4) == (2, 2)


def test_line_col_is_total():
    doc = scan("abc")
    assert doc.line_col(-5) == (1, 1)
    assert doc.line_col(1000) == (1, 4)


def test_empty_text():
    doc = scan("")
    assert doc.lines == ("",)
    assert doc.stripped_text == ""


def test_bracket_pairs_indexed():
    doc = scan("f(a(b)) { x; { y; } }")
    assert doc.paren_pairs == {1: 7, 3: 6}
    assert doc.brace_pairs == {8: 21, 13: 19}
    assert doc.statement_marks == (8, 11, 13, 16, 18, 20)


def test_unclosed_brackets_run_to_end():
    doc = scan("{ ( } )")
    assert doc.brace_pairs == {0: 5}
    assert doc.paren_pairs == {2: 7}
    doc = scan("{{ ((")
    assert doc.brace_pairs == {0: 5, 1: 5}
    assert doc.paren_pairs == {3: 5, 4: 5}


def test_brackets_in_comments_and_strings_not_indexed():
    doc = scan('{ "}" // }\n}')
    assert doc.brace_pairs == {0: 12}


def test_contracts_and_functions():
    src = (
        "interface I { function g() external; }\n"
        "contract A is I {\n"
        "    function f(uint x) public onlyOwner returns (uint) { return x; }\n"
        "    function h() internal view { if (true) { } }\n"
        "}\n"
        "function free() pure {}\n"
    )
    doc = scan(src)
    assert [(c.name, c.kind) for c in doc.contracts] == [("I", "interface"), ("A", "contract")]
    assert [(f.name, f.contract) for f in doc.functions] == [
        ("f", "A"), ("h", "A"), ("free", "Unknown"),
    ]
    f = doc.functions[0]
    assert (f.visibility, f.mutability, f.modifiers) == ("public", None, ("onlyOwner",))
    assert f.body == "{ return x; }"
    assert doc.functions[1].mutability == "view"


def test_unbalanced_function_heads_nest_into_first_body():
    src = "contract C {\n" + "function f() public {\n" * 3000
    doc = scan(src)
    assert len(doc.contracts) == 1
    assert doc.contracts[0].body_end == len(src)
    assert len(doc.functions) == 1
    assert doc.functions[0].body_end == len(src)
    assert len(doc.brace_pairs) == 3001
