"""Tests for the prefix search index."""

from orgscope.engine.indexers import SearchIndex
from orgscope.engine.models import Organization


def make_orgs():
    return [
        Organization(name="Acme Motors", tags=("EV", "Battery")),
        Organization(name="Beta", tags=("ev", "fast")),
        Organization(name="Evergreen", tags=("solar",)),
    ]


class TestBuild:
    """Test index construction."""

    def test_prefix_closure(self):
        """Every prefix from the minimum length up to each token is indexed."""
        orgs = make_orgs()
        index = SearchIndex(min_length=2)
        index.build(orgs)

        for org in orgs:
            for token in org.tokens:
                for k in range(2, len(token) + 1):
                    assert org in index.query(token[:k]), (org.name, token[:k])

    def test_prefixes_below_minimum_are_not_indexed(self):
        """Single-character prefixes never get a bucket with min_length=2."""
        index = SearchIndex(min_length=2)
        index.build(make_orgs())

        assert "a" not in index
        assert "ac" in index
        assert index.query("a") == []

    def test_item_listed_once_per_bucket(self):
        """An item reached through several tokens appears once."""
        org = Organization(name="Evolve", tags=("ev", "evtol"))
        index = SearchIndex(min_length=2)
        index.build([org])

        assert index.query("ev") == [org]

    def test_buckets_keep_dataset_order(self):
        """Bucket order follows the order items were indexed in."""
        orgs = make_orgs()
        index = SearchIndex(min_length=2)
        index.build(orgs)

        assert index.query("ev") == orgs

    def test_invalid_items_are_skipped(self):
        """Non-organization entries are ignored."""
        org = Organization(name="Gamma")
        index = SearchIndex(min_length=2)

        assert index.build([None, {"name": "dict"}, "text", org]) == 1
        assert index.query("ga") == [org]
        assert index.indexed_count == 1

    def test_rebuild_clears_previous_state(self):
        """A rebuild forgets items from the previous dataset."""
        index = SearchIndex(min_length=2)
        index.build(make_orgs())

        fresh = Organization(name="Delta")
        index.build([fresh])

        assert index.query("ac") == []
        assert index.query("de") == [fresh]

    def test_empty_dataset(self):
        """Building over nothing gives an empty index."""
        index = SearchIndex(min_length=2)
        assert index.build([]) == 0
        assert len(index) == 0


class TestQuery:
    """Test index lookups."""

    def test_query_before_build(self):
        """An unbuilt index answers every query with nothing."""
        assert SearchIndex().query("acme") == []

    def test_query_is_case_insensitive(self):
        """Terms are lower-cased like the tokens."""
        index = SearchIndex(min_length=2)
        index.build(make_orgs())

        assert [o.name for o in index.query("ACME")] == ["Acme Motors"]

    def test_query_matches_token_prefix_only(self):
        """Only token prefixes match, not inner substrings."""
        index = SearchIndex(min_length=2)
        index.build(make_orgs())

        assert index.query("me") == []
        assert index.query("motors") == []
        assert [o.name for o in index.query("acme motors")] == ["Acme Motors"]

    def test_short_terms_are_not_queryable(self):
        """Terms below the minimum length report themselves unqueryable."""
        index = SearchIndex(min_length=3)
        index.build(make_orgs())

        assert not index.is_queryable("ac")
        assert not index.is_queryable("")
        assert index.is_queryable("acm")
        assert index.query("ac") == []

    def test_query_returns_copy(self):
        """Mutating a result does not change the bucket."""
        index = SearchIndex(min_length=2)
        index.build(make_orgs())

        result = index.query("ev")
        result.clear()

        assert len(index.query("ev")) == 3

    def test_stats(self):
        """Stats report what was indexed."""
        index = SearchIndex(min_length=2)
        index.build(make_orgs())

        stats = index.get_stats()
        assert stats["type"] == "prefix"
        assert stats["documents_indexed"] == 3
        assert stats["prefixes"] == len(index)
