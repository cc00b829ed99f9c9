from __future__ import annotations

import pytest

from hunkview.diff_parser import (
    PatchParseError,
    file_header_lines,
    parse_patch,
    parse_patch_strict,
)
from hunkview.models import Line
from hunkview.serializer import build_hunk_patch, serialize_hunk, serialize_hunks


def test_parse_assigns_types_content_and_line_numbers(sample_patch: str) -> None:
    files = parse_patch(sample_patch)
    assert len(files) == 1

    patch_file = files[0]
    assert patch_file.old_file_name == "a/src/demo.py"
    assert patch_file.new_file_name == "b/src/demo.py"
    assert patch_file.path == "src/demo.py"
    assert patch_file.status == "modified"
    assert patch_file.additions == 2
    assert patch_file.deletions == 1

    hunk = patch_file.hunks[0]
    assert hunk.header == "@@ -1,2 +1,3 @@"
    assert (hunk.old_start, hunk.old_lines, hunk.new_start, hunk.new_lines) == (1, 2, 1, 3)
    assert hunk.lines == (
        Line("context", "def greet():", 1, 1),
        Line("deletion", '    return "hi"', 2, None),
        Line("addition", '    message = "hi"', None, 2),
        Line("addition", "    return message", None, 3),
    )


def test_context_line_numbers_advance_by_one(two_hunk_patch: str) -> None:
    for hunk in parse_patch(two_hunk_patch)[0].hunks:
        context = [line for line in hunk.lines if line.type == "context"]
        old_numbers = [line.old_line_number for line in hunk.lines if line.old_line_number is not None]
        new_numbers = [line.new_line_number for line in hunk.lines if line.new_line_number is not None]
        assert all(line.old_line_number is not None and line.new_line_number is not None for line in context)
        assert old_numbers == list(range(hunk.old_start, hunk.old_start + len(old_numbers)))
        assert new_numbers == list(range(hunk.new_start, hunk.new_start + len(new_numbers)))


def test_parse_keeps_section_text_out_of_header(two_hunk_patch: str) -> None:
    second = parse_patch(two_hunk_patch)[0].hunks[1]
    assert second.header == "@@ -10,2 +10,3 @@"
    assert second.section == "def tail():"


def test_missing_counts_default_to_one() -> None:
    files = parse_patch("--- a/f.txt\n+++ b/f.txt\n@@ -3 +3 @@\n-x\n+y\n")
    hunk = files[0].hunks[0]
    assert hunk.old_lines == 1
    assert hunk.new_lines == 1
    assert hunk.header == "@@ -3,1 +3,1 @@"


def test_parse_splits_multiple_files(sample_patch: str, two_hunk_patch: str) -> None:
    files = parse_patch(sample_patch + two_hunk_patch)
    assert [patch_file.path for patch_file in files] == ["src/demo.py", "notes.txt"]
    assert [len(patch_file.hunks) for patch_file in files] == [1, 2]


def test_file_header_without_hunks_is_an_empty_file() -> None:
    files = parse_patch("--- a/x.txt\n+++ b/x.txt\nnothing to see here\n")
    assert len(files) == 1
    assert files[0].hunks == ()
    assert files[0].path == "x.txt"


def test_git_header_only_section_uses_git_names() -> None:
    files = parse_patch(
        "diff --git a/run.sh b/run.sh\nold mode 100644\nnew mode 100755\n"
    )
    assert len(files) == 1
    assert files[0].old_file_name == "a/run.sh"
    assert files[0].new_file_name == "b/run.sh"
    assert files[0].hunks == ()


def test_header_names_drop_timestamps_and_dev_null() -> None:
    files = parse_patch(
        "--- /dev/null\t2024-01-01 00:00:00\n+++ b/new.txt\t2024-01-02 00:00:00\n"
        "@@ -0,0 +1,1 @@\n+hello\n"
    )
    assert files[0].old_file_name == "/dev/null"
    assert files[0].new_file_name == "b/new.txt"
    assert files[0].status == "added"
    assert files[0].path == "new.txt"


@pytest.mark.parametrize(
    "patch_text",
    [
        "--- a/x\n+++ b/x\n@@ bogus @@\n",
        "--- a/x\n+++ b/x\n@@ -1,3 +1,3 @@\n a\n",
        "--- a/x\n+++ b/x\n@@ -1,2 +1,2 @@\n a\n@@ -9,1 +9,1 @@\n b\n",
        "--- a/f\n+++ b/f\n@@ -1 +1 @@\n-a\n+b\n+c\n",
        "--- a/f\n+++ b/f\n@@ -1 +1 @@\n-a\n+b\n stray\n",
    ],
)
def test_malformed_patch_fails_soft(patch_text: str) -> None:
    assert parse_patch(patch_text) == []
    with pytest.raises(PatchParseError):
        parse_patch_strict(patch_text)


def test_strict_error_reports_line_number() -> None:
    with pytest.raises(PatchParseError) as excinfo:
        parse_patch_strict("--- a/x\n+++ b/x\n@@ nope\n")
    assert excinfo.value.line_number == 3


def test_empty_text_parses_to_nothing() -> None:
    assert parse_patch("") == []
    assert parse_patch("  \n") == []


def test_deleted_line_that_looks_like_file_header() -> None:
    files = parse_patch("--- a/x\n+++ b/x\n@@ -1,2 +1,1 @@\n--- dashes\n keep\n")
    assert len(files) == 1
    lines = files[0].hunks[0].lines
    assert lines[0] == Line("deletion", "-- dashes", 1, None)
    assert lines[1] == Line("context", "keep", 2, 1)


def test_blank_body_line_is_empty_context() -> None:
    files = parse_patch("--- a/x\n+++ b/x\n@@ -1,3 +1,3 @@\n a\n\n-b\n+c\n")
    lines = files[0].hunks[0].lines
    assert lines[1] == Line("context", "", 2, 2)
    assert [line.type for line in lines] == ["context", "context", "deletion", "addition"]


def test_no_newline_marker_flags_previous_line() -> None:
    body = (
        "@@ -1 +1 @@\n"
        "-old\n"
        "\\ No newline at end of file\n"
        "+new\n"
        "\\ No newline at end of file\n"
    )
    hunk = parse_patch("--- a/f\n+++ b/f\n" + body)[0].hunks[0]
    assert [line.missing_newline for line in hunk.lines] == [True, True]
    assert serialize_hunk(hunk) == body.replace("@@ -1 +1 @@", "@@ -1,1 +1,1 @@")


def test_hunk_without_file_header_uses_placeholder_names() -> None:
    files = parse_patch("@@ -1 +1 @@\n-a\n+b\n")
    assert len(files) == 1
    assert [line.content for line in file_header_lines(files[0])] == ["--- a", "+++ b"]
    assert all(line.type == "header" for line in file_header_lines(files[0]))


def test_serialize_hunk_restores_markers(sample_patch: str) -> None:
    hunk = parse_patch(sample_patch)[0].hunks[0]
    assert serialize_hunk(hunk) == (
        "@@ -1,2 +1,3 @@\n"
        " def greet():\n"
        '-    return "hi"\n'
        '+    message = "hi"\n'
        "+    return message\n"
    )


def test_serialized_hunks_parse_back_to_the_same_lines(two_hunk_patch: str) -> None:
    for hunk in parse_patch(two_hunk_patch)[0].hunks:
        reparsed = parse_patch("--- a/notes.txt\n+++ b/notes.txt\n" + serialize_hunk(hunk))
        assert reparsed[0].hunks[0].lines == hunk.lines


def test_serialize_hunks_separates_with_blank_line(two_hunk_patch: str) -> None:
    hunks = parse_patch(two_hunk_patch)[0].hunks
    text = serialize_hunks(hunks)
    assert text == serialize_hunk(hunks[0]) + "\n" + serialize_hunk(hunks[1])
    assert "gamma\n\n@@ -10,2" in text


def test_build_hunk_patch_adds_file_headers(sample_patch: str) -> None:
    hunk_text = serialize_hunk(parse_patch(sample_patch)[0].hunks[0])
    patch = build_hunk_patch("src/demo.py", hunk_text)
    assert patch.startswith(
        "diff --git a/src/demo.py b/src/demo.py\n--- a/src/demo.py\n+++ b/src/demo.py\n@@ -1,2 +1,3 @@\n"
    )
    assert parse_patch(patch)[0].hunks[0].lines == parse_patch(sample_patch)[0].hunks[0].lines


def test_form_feed_stays_inside_its_line() -> None:
    hunk = parse_patch("--- a/f\n+++ b/f\n@@ -1,2 +1,2 @@\n a\x0cb\n-old\n+new\n")[0].hunks[0]
    assert [(line.type, line.content) for line in hunk.lines] == [
        ("context", "a\x0cb"),
        ("deletion", "old"),
        ("addition", "new"),
    ]


def test_crlf_content_survives_a_round_trip() -> None:
    body = "@@ -1,2 +1,2 @@\n keep\r\n-old\r\n+new\r\n"
    files = parse_patch("diff --git a/w.txt b/w.txt\r\n--- a/w.txt\r\n+++ b/w.txt\r\n" + body)
    assert files[0].new_file_name == "b/w.txt"
    assert files[0].path == "w.txt"
    hunk = files[0].hunks[0]
    assert [line.content for line in hunk.lines] == ["keep\r", "old\r", "new\r"]
    assert serialize_hunk(hunk) == body
