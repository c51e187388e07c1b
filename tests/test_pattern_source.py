"""
Tests for the include/exclude key filter decorator.
"""

import pytest

from redis_migrate.exceptions import PatternError, StoreReadError
from redis_migrate.models import HashItem, KeyType, ZSetMember
from redis_migrate.pattern_source import KeyPatternSource, compile_patterns, new_key_pattern_source

from tests.doubles import MemorySource


def resolved_types(source):
    it = source.iterator()
    types = {}
    while True:
        key = it.next_key()
        if key is None:
            return types
        types[key.key] = key.resolve_type()


@pytest.fixture
def source():
    return MemorySource([
        ("user:1", KeyType.STRING, b"a"),
        ("user:admin", KeyType.HASH, {"f": b"v"}),
        ("session:1", KeyType.STRING, b"b"),
        ("meta", KeyType.SKIP, None),
    ])


class TestConstruction:

    def test_no_patterns_returns_source_unwrapped(self, source):
        assert new_key_pattern_source(source, [], []) is source
        assert new_key_pattern_source(source, None, None) is source

    def test_invalid_include_rejected(self, source):
        with pytest.raises(PatternError, match=r"\(unclosed"):
            new_key_pattern_source(source, ["(unclosed"], [])

    def test_invalid_exclude_rejected(self, source):
        with pytest.raises(PatternError):
            new_key_pattern_source(source, [], ["[a-"])

    def test_compile_patterns(self):
        assert [p.pattern for p in compile_patterns(["^a", "b$"])] == ["^a", "b$"]
        assert compile_patterns(None) == []


class TestFilterSemantics:

    def test_excludes_alone(self, source):
        filtered = new_key_pattern_source(source, [], ["^session:"])

        assert resolved_types(filtered) == {
            "user:1": KeyType.STRING,
            "user:admin": KeyType.HASH,
            "session:1": KeyType.SKIP,
            "meta": KeyType.SKIP,
        }

    def test_includes_must_match(self, source):
        filtered = new_key_pattern_source(source, ["^user:"], [])

        assert resolved_types(filtered) == {
            "user:1": KeyType.STRING,
            "user:admin": KeyType.HASH,
            "session:1": KeyType.SKIP,
            "meta": KeyType.SKIP,
        }

    def test_exclude_wins_over_include(self, source):
        filtered = new_key_pattern_source(source, ["^user:"], ["admin"])

        types = resolved_types(filtered)

        assert types["user:admin"] == KeyType.SKIP
        assert types["user:1"] == KeyType.STRING

    def test_unmatched_include_skips_regardless_of_excludes(self, source):
        filtered = new_key_pattern_source(source, ["^nothing$"], ["^other$"])

        assert set(resolved_types(filtered).values()) == {KeyType.SKIP}

    def test_patterns_are_unanchored(self, source):
        filtered = new_key_pattern_source(source, ["admin"], [])

        assert resolved_types(filtered)["user:admin"] == KeyType.HASH

    def test_skip_passes_through_unchanged(self, source):
        filtered = new_key_pattern_source(source, ["meta"], [])

        assert resolved_types(filtered)["meta"] == KeyType.SKIP

    def test_filtering_is_lazy(self, source, type_error):
        source.type_errors["session:1"] = type_error
        filtered = new_key_pattern_source(source, [], ["^session:"])
        it = filtered.iterator()

        keys = [it.next_key() for _ in range(3)]

        assert [k.key for k in keys] == ["user:1", "user:admin", "session:1"]
        with pytest.raises(type(type_error)):
            keys[2].resolve_type()


class TestForwarding:

    def test_accessors_unwrap_keys(self):
        inner = MemorySource([
            ("s", KeyType.STRING, b"v"),
            ("h", KeyType.HASH, {"f": b"v"}),
            ("l", KeyType.LIST, [b"i"]),
            ("st", KeyType.SET, ["m"]),
            ("z", KeyType.ZSET, [("m", 1.0)]),
        ])
        filtered = KeyPatternSource(inner, excludes=["^nope$"])
        it = filtered.iterator()
        s, h, l, st, z = [it.next_key() for _ in range(5)]

        assert filtered.get_string(s) == b"v"
        assert filtered.get_hash_items(h) == [HashItem("f", b"v")]
        assert filtered.get_list_items(l) == [b"i"]
        assert filtered.get_set_members(st) == ["m"]
        assert filtered.get_zset_members(z) == [ZSetMember("m", 1.0)]

    def test_iterator_error_and_close_forwarded(self, source):
        source.fail_after = 0
        filtered = new_key_pattern_source(source, ["x"], [])
        it = filtered.iterator()

        assert it.next_key() is None
        assert isinstance(it.error, StoreReadError)
        it.close()
        assert source.iterators[0].closed

    def test_close_forwarded(self, source):
        filtered = new_key_pattern_source(source, ["x"], [])

        filtered.close()

        assert source.closed
