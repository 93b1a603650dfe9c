"""Tests for the entity and relation type schema."""

import threading

import pytest

from kbp_relations.schema import (
    NO_RELATION,
    Cardinality,
    EntityType,
    RelationType,
    RelationTypeLookup,
    lookup_entity_type,
    lookup_relation_type,
    plausibly_has_relation,
    relation_types_for,
)


class TestEntityType:
    """Tests for EntityType and its lookup."""

    def test_short_codes_are_unique(self):
        """Should assign a distinct short code to every entity type."""
        codes = [e.short_name for e in EntityType]
        assert len(codes) == len(set(codes))

    @pytest.mark.parametrize("name", ["PERSON", "person", "Person", "PER", "per"])
    def test_lookup_case_insensitive(self, name):
        """Should match canonical names and short codes in any case."""
        assert lookup_entity_type(name) is EntityType.PERSON

    def test_canonical_name_before_short_code(self):
        """Should prefer a canonical-name match over a short-code match."""
        assert lookup_entity_type("URL") is EntityType.URL
        assert lookup_entity_type("TIT") is EntityType.TITLE

    @pytest.mark.parametrize("name", ["", None, "NOT_A_TYPE"])
    def test_lookup_missing(self, name):
        """Should return None for empty or unknown names."""
        assert lookup_entity_type(name) is None

    def test_str_is_canonical_name(self):
        assert str(EntityType.STATE_OR_PROVINCE) == "STATE_OR_PROVINCE"

    def test_regexner_flag(self):
        assert EntityType.TITLE.is_regexner_type
        assert not EntityType.PERSON.is_regexner_type


class TestRelationType:
    """Tests for the relation table."""

    def test_every_relation_has_objects(self):
        """Should give every relation a non-empty set of object types."""
        for relation in RelationType:
            assert relation.valid_ner_labels, relation

    def test_canonical_names_are_unique(self):
        names = [r.canonical_name for r in RelationType]
        assert len(names) == len(set(names))

    def test_subject_types(self):
        for relation in RelationType:
            assert relation.entity_type in (
                EntityType.PERSON, EntityType.ORGANIZATION, EntityType.GPE
            )

    def test_per_title(self):
        relation = RelationType.PER_TITLE
        assert relation.canonical_name == "per:title"
        assert relation.entity_type is EntityType.PERSON
        assert relation.cardinality is Cardinality.LIST
        assert relation.accepts_object(EntityType.TITLE)
        assert not relation.accepts_object(EntityType.DATE)

    def test_org_founded_rejects_title(self):
        assert not RelationType.ORG_FOUNDED.accepts_object(EntityType.TITLE)

    def test_sentinel_is_not_a_relation(self):
        assert lookup_relation_type(NO_RELATION) is None


class TestRelationTypeLookup:
    """Tests for the memoizing relation name resolver."""

    @pytest.fixture
    def lookup(self):
        return RelationTypeLookup()

    @pytest.mark.parametrize(
        "name,expected",
        [
            ("per:title", RelationType.PER_TITLE),
            ("PER_TITLE", RelationType.PER_TITLE),
            ("PER:TITLE", RelationType.PER_TITLE),
            ("org:top_members/employees", RelationType.ORG_TOP_MEMBERS_SLASH_EMPLOYEES),
            ("org:top_members_SLASH_employees", None),
            ("org:top_membersSLASHemployees", RelationType.ORG_TOP_MEMBERS_SLASH_EMPLOYEES),
            ("org:number_of_employeesslashmembers", RelationType.ORG_NUMBER_OF_EMPLOYEES_SLASH_MEMBERS),
        ],
    )
    def test_resolve(self, lookup, name, expected):
        """Should resolve exact names, member names and "slash" spellings."""
        assert lookup(name) is expected

    def test_caches_hits_and_misses(self, lookup):
        """Should memoize both successful and failed lookups."""
        assert lookup("per:title") is RelationType.PER_TITLE
        assert lookup("no such relation") is None
        assert "per:title" in lookup
        assert "no such relation" in lookup
        assert len(lookup) == 2

    def test_idempotent(self, lookup):
        """Should return the same result on repeated calls."""
        first = lookup("per:cities_of_residence")
        for _ in range(5):
            assert lookup("per:cities_of_residence") is first
        assert len(lookup) == 1

    def test_none(self, lookup):
        assert lookup(None) is None
        assert len(lookup) == 0

    def test_concurrent_population(self, lookup):
        """Should converge to one entry per key under concurrent inserts."""
        names = [r.canonical_name for r in RelationType] + ["bogus"]
        results = []

        def worker():
            results.append([lookup(name) for name in names])

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert all(r == results[0] for r in results)
        assert len(lookup) == len(names)

    def test_clear(self, lookup):
        lookup("per:title")
        lookup.clear()
        assert len(lookup) == 0


class TestPlausibility:
    """Tests for the coarse subject/object compatibility filter."""

    def test_plausible(self):
        assert plausibly_has_relation(EntityType.PERSON, EntityType.TITLE)
        assert plausibly_has_relation(EntityType.ORGANIZATION, EntityType.URL)

    def test_implausible(self):
        assert not plausibly_has_relation(EntityType.PERSON, EntityType.URL)
        assert not plausibly_has_relation(EntityType.TITLE, EntityType.PERSON)

    def test_relation_types_for(self):
        relations = relation_types_for(EntityType.ORGANIZATION)
        assert RelationType.ORG_FOUNDED in relations
        assert RelationType.PER_TITLE not in relations
