"""Tests for the patch parser."""

from textwrap import dedent

from conftest import load_fixture

from scmkit.diff import parse_patch


class TestParsePatch:
    """Tests for parse_patch."""

    def test_format_patch(self) -> None:
        changes = parse_patch(load_fixture("gitea/pr_changes.patch"))

        assert [c.path for c in changes] == ["LICENSE", "docs/new.md"]
        assert [(c.additions, c.deletions) for c in changes] == [(3, 1), (0, 0)]

        license_change, rename = changes
        assert license_change.changes == 4
        assert not license_change.added
        assert not license_change.renamed
        assert license_change.patch.startswith("@@ -1,3 +1,5 @@\n")
        assert "2.17.0" not in license_change.patch

        assert rename.renamed
        assert rename.previous_path == "docs/old.md"
        assert rename.patch == ""

    def test_accepts_str(self) -> None:
        text = load_fixture("gitea/pr_changes.patch").decode()
        assert len(parse_patch(text)) == 2

    def test_empty(self) -> None:
        assert parse_patch("") == []

    def test_new_and_deleted_files(self) -> None:
        text = dedent(
            """\
            diff --git a/added.txt b/added.txt
            new file mode 100644
            index 0000000..e69de29
            --- /dev/null
            +++ b/added.txt
            @@ -0,0 +1,2 @@
            +one
            +two
            diff --git a/removed.txt b/removed.txt
            deleted file mode 100644
            index e69de29..0000000
            --- a/removed.txt
            +++ /dev/null
            @@ -1 +0,0 @@
            -gone
            """
        )
        added, removed = parse_patch(text)

        assert added.path == "added.txt"
        assert added.added
        assert added.additions == 2

        assert removed.path == "removed.txt"
        assert removed.deleted
        assert removed.deletions == 1

    def test_multiple_hunks(self) -> None:
        text = dedent(
            """\
            diff --git a/main.py b/main.py
            index 1111111..2222222 100644
            --- a/main.py
            +++ b/main.py
            @@ -1,2 +1,2 @@
            -import os
            +import sys

            @@ -10,3 +10,4 @@ def main():
                 pass
            +    return 0


            """
        )
        (change,) = parse_patch(text)
        assert change.additions == 2
        assert change.deletions == 1
        assert change.patch.count("@@ -") == 2

    def test_lines_that_look_like_headers_inside_hunk(self) -> None:
        text = dedent(
            """\
            diff --git a/notes.md b/notes.md
            index 1111111..2222222 100644
            --- a/notes.md
            +++ b/notes.md
            @@ -1,2 +1,2 @@
            --- old heading
            +++ new heading
             body
            """
        )
        (change,) = parse_patch(text)
        assert change.path == "notes.md"
        assert change.additions == 1
        assert change.deletions == 1

    def test_binary(self) -> None:
        changes = parse_patch(load_fixture("stash/pr_changes.diff"))
        readme, logo = changes

        assert readme.path == "README.md"
        assert (readme.additions, readme.deletions) == (1, 1)
        assert readme.patch.endswith("\\ No newline at end of file\n")

        assert logo.path == "logo.png"
        assert logo.binary
        assert logo.added
        assert logo.changes == 0

    def test_plain_unified_diff(self) -> None:
        text = dedent(
            """\
            --- hello.c\t2018-06-01 10:00:00.000000000 +0800
            +++ hello.c\t2018-06-01 10:05:00.000000000 +0800
            @@ -1,3 +1,3 @@
             #include <stdio.h>
            -int main() { printf("hi"); }
            +int main(void) { printf("hi\\n"); }

            --- Makefile
            +++ Makefile
            @@ -1 +1,2 @@
             all: hello
            +clean: ; rm -f hello
            """
        )
        hello, makefile = parse_patch(text)
        assert hello.path == "hello.c"
        assert (hello.additions, hello.deletions) == (1, 1)
        assert makefile.path == "Makefile"
        assert (makefile.additions, makefile.deletions) == (1, 0)

    def test_path_with_spaces(self) -> None:
        text = dedent(
            """\
            diff --git a/my docs/read me.md b/my docs/read me.md
            index 1111111..2222222 100644
            --- a/my docs/read me.md
            +++ b/my docs/read me.md
            @@ -1 +1 @@
            -a
            +b
            """
        )
        (change,) = parse_patch(text)
        assert change.path == "my docs/read me.md"

    def test_truncated_patch(self) -> None:
        text = dedent(
            """\
            diff --git a/a.txt b/a.txt
            --- a/a.txt
            +++ b/a.txt
            @@ -1,3 +1,3 @@
            -x
            """
        )
        (change,) = parse_patch(text)
        assert change.deletions == 1
