"""Tests for the aliases(5) file codec."""

import os

from sysconverge.aliases import AliasFile, AliasTable

SAMPLE = """\
# Basic system aliases
postmaster: root
root: bob,
    carol
# per-user
bob: bob@example.org
"""


def test_parse_continuation_lines():
    table = AliasTable.parse(SAMPLE)
    assert table.get("root") == ["bob", "carol"]
    assert table.get("postmaster") == ["root"]
    assert table.names() == ["postmaster", "root", "bob"]


def test_missing_alias_is_empty():
    assert AliasTable.parse(SAMPLE).get("alice") == []


def test_duplicate_entries_are_merged():
    table = AliasTable.parse("root: bob\nroot: carol, bob\n")
    assert table.get("root") == ["bob", "carol"]


def test_render_untouched_table_is_identical():
    assert AliasTable.parse(SAMPLE).render() == SAMPLE


def test_set_replaces_in_place_and_keeps_comments():
    table = AliasTable.parse(SAMPLE)
    table.set("root", ["bob", "alice"])

    assert table.render() == (
        "# Basic system aliases\n"
        "postmaster: root\n"
        "root: bob, alice\n"
        "# per-user\n"
        "bob: bob@example.org\n"
    )


def test_set_appends_new_alias():
    table = AliasTable.parse(SAMPLE)
    table.set("alice", ["alice@example.org"])
    assert table.render().endswith("bob: bob@example.org\nalice: alice@example.org\n")


def test_set_empty_drops_every_entry():
    table = AliasTable.parse("bob: b@x.org\nroot: bob\nbob: other@x.org\n")
    table.set("bob", [])
    assert table.render() == "root: bob\n"
    assert "bob" not in table.names()


def test_alias_file_missing_reads_empty(temp_dir):
    alias_file = AliasFile(temp_dir / "aliases")
    assert alias_file.get("root") == []


def test_alias_file_set_round_trip(temp_dir):
    path = temp_dir / "aliases"
    path.write_text(SAMPLE)
    os.chmod(path, 0o640)
    alias_file = AliasFile(path)

    alias_file.set("alice", ["alice@example.org"])
    alias_file.set("root", ["bob"])

    assert alias_file.get("alice") == ["alice@example.org"]
    assert alias_file.get("root") == ["bob"]
    assert path.read_text().startswith("# Basic system aliases\n")
    assert path.stat().st_mode & 0o777 == 0o640
    assert sorted(p.name for p in temp_dir.iterdir()) == ["aliases"]


def test_alias_file_creates_parent_directory(temp_dir):
    alias_file = AliasFile(temp_dir / "etc" / "aliases")
    alias_file.set("root", ["alice"])
    assert (temp_dir / "etc" / "aliases").read_text() == "root: alice\n"


def test_alias_file_keeps_non_utf8_bytes(temp_dir):
    path = temp_dir / "aliases"
    path.write_bytes(b"# caf\xe9\nroot: bob\n")
    alias_file = AliasFile(path)

    assert alias_file.get("root") == ["bob"]
    alias_file.set("root", ["bob", "alice"])

    assert path.read_bytes() == b"# caf\xe9\nroot: bob, alice\n"


def test_quoted_recipient_with_comma_kept_whole():
    table = AliasTable.parse('root: bob, "|/usr/bin/filter a, b"\n')
    assert table.get("root") == ["bob", '"|/usr/bin/filter a, b"']

    table.set("root", [*table.get("root"), "alice"])

    assert table.render() == 'root: bob, "|/usr/bin/filter a, b", alice\n'
