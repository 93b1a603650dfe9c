"""Closed schema of KBP entity types and relation types.

The tables below are the fixed catalog the extractor is trained against.
Short codes of entity types are used in serialized models; they must never
change once assigned.
"""

import re
import threading
from enum import Enum
from typing import Dict, FrozenSet, Iterable, List, Optional


NO_RELATION = "no_relation"


class EntityType(Enum):
    """Valid KBP NER tags.

    Each member carries its canonical (upper case) name, a short code for
    compact serialization, and whether the tag comes from the secondary
    pattern tagger (RegexNER) rather than the statistical NER model.
    """

    # MEMBER             NAME                 CODE   REGEXNER
    CAUSE_OF_DEATH = ("CAUSE_OF_DEATH", "COD", True)
    CITY = ("CITY", "CIT", True)
    COUNTRY = ("COUNTRY", "CRY", True)
    CRIMINAL_CHARGE = ("CRIMINAL_CHARGE", "CC", True)
    DATE = ("DATE", "DT", False)
    IDEOLOGY = ("IDEOLOGY", "IDY", True)
    LOCATION = ("LOCATION", "LOC", False)
    MISC = ("MISC", "MSC", False)
    MODIFIER = ("MODIFIER", "MOD", False)
    NATIONALITY = ("NATIONALITY", "NAT", True)
    NUMBER = ("NUMBER", "NUM", False)
    ORGANIZATION = ("ORGANIZATION", "ORG", False)
    PERSON = ("PERSON", "PER", False)
    RELIGION = ("RELIGION", "REL", True)
    STATE_OR_PROVINCE = ("STATE_OR_PROVINCE", "ST", True)
    TITLE = ("TITLE", "TIT", True)
    URL = ("URL", "URL", True)
    DURATION = ("DURATION", "DUR", False)
    # Only used for entities in the cold-start setting.
    GPE = ("GPE", "GPE", False)

    def __init__(self, canonical_name: str, short_name: str, is_regexner_type: bool):
        self.canonical_name = canonical_name
        self.short_name = short_name
        self.is_regexner_type = is_regexner_type

    def __str__(self) -> str:
        return self.canonical_name


class Cardinality(Enum):
    """Whether a relation admits at most one object value, or many."""

    SINGLE = "single"
    LIST = "list"


_E = EntityType
_SINGLE = Cardinality.SINGLE
_LIST = Cardinality.LIST


class RelationType(Enum):
    """Known KBP relation types (2013 shared task), plus their inverses.

    Changing these constants breaks previously serialized models.
    per:spouse, org:founded_by and X:organizations_founded are LIST
    relations in the task definition; the table keeps that.
    """

    # MEMBER = (name, original, query_limit, subject, cardinality, objects, pos_prefixes, prior)
    PER_ALTERNATE_NAMES = ("per:alternate_names", True, 10, _E.PERSON, _LIST, (_E.PERSON, _E.MISC), ("NNP",), 0.0353027270308107100)
    PER_CHILDREN = ("per:children", True, 5, _E.PERSON, _LIST, (_E.PERSON,), ("NNP",), 0.0058428110284504410)
    PER_CITIES_OF_RESIDENCE = ("per:cities_of_residence", True, 5, _E.PERSON, _LIST, (_E.CITY,), ("NNP",), 0.0136105679675116560)
    PER_CITY_OF_BIRTH = ("per:city_of_birth", True, 3, _E.PERSON, _SINGLE, (_E.CITY,), ("NNP",), 0.0358146961159769100)
    PER_CITY_OF_DEATH = ("per:city_of_death", True, 3, _E.PERSON, _SINGLE, (_E.CITY,), ("NNP",), 0.0102003332137774650)
    PER_COUNTRIES_OF_RESIDENCE = ("per:countries_of_residence", True, 5, _E.PERSON, _LIST, (_E.COUNTRY,), ("NNP",), 0.0107788293552082020)
    PER_COUNTRY_OF_BIRTH = ("per:country_of_birth", True, 3, _E.PERSON, _SINGLE, (_E.COUNTRY,), ("NNP",), 0.0223444134627622040)
    PER_COUNTRY_OF_DEATH = ("per:country_of_death", True, 3, _E.PERSON, _SINGLE, (_E.COUNTRY,), ("NNP",), 0.0060626395621941200)
    PER_EMPLOYEE_OF = ("per:employee_of", True, 10, _E.PERSON, _LIST, (_E.ORGANIZATION, _E.COUNTRY, _E.STATE_OR_PROVINCE, _E.CITY), ("NNP",), 2.0335281901169719200)
    PER_LOC_OF_BIRTH = ("per:LOCATION_of_birth", True, 3, _E.PERSON, _LIST, (_E.CITY, _E.STATE_OR_PROVINCE, _E.COUNTRY), ("NNP",), 0.0165825918941120660)
    PER_LOC_OF_DEATH = ("per:LOCATION_of_death", True, 3, _E.PERSON, _LIST, (_E.CITY, _E.STATE_OR_PROVINCE, _E.COUNTRY), ("NNP",), 0.0165825918941120660)
    PER_LOC_OF_RESIDENCE = ("per:LOCATION_of_residence", True, 3, _E.PERSON, _LIST, (_E.STATE_OR_PROVINCE,), ("NNP",), 0.0165825918941120660)
    PER_MEMBER_OF = ("per:member_of", True, 10, _E.PERSON, _LIST, (_E.ORGANIZATION,), ("NNP",), 0.0521716745149309900)
    PER_ORIGIN = ("per:origin", True, 10, _E.PERSON, _LIST, (_E.NATIONALITY, _E.COUNTRY), ("NNP",), 0.0069795559463618380)
    PER_OTHER_FAMILY = ("per:other_family", True, 5, _E.PERSON, _LIST, (_E.PERSON,), ("NNP",), 2.7478566717959990E-5)
    PER_PARENTS = ("per:parents", True, 5, _E.PERSON, _LIST, (_E.PERSON,), ("NNP",), 0.0032222235077692030)
    PER_SCHOOLS_ATTENDED = ("per:schools_attended", True, 5, _E.PERSON, _LIST, (_E.ORGANIZATION,), ("NNP",), 0.0054696810172276150)
    PER_SIBLINGS = ("per:siblings", True, 5, _E.PERSON, _LIST, (_E.PERSON,), ("NNP",), 1.000000000000000e-99)
    PER_SPOUSE = ("per:spouse", True, 3, _E.PERSON, _LIST, (_E.PERSON,), ("NNP",), 0.0164075968113292680)
    PER_STATE_OR_PROVINCES_OF_BIRTH = ("per:stateorprovince_of_birth", True, 3, _E.PERSON, _SINGLE, (_E.STATE_OR_PROVINCE,), ("NNP",), 0.0165825918941120660)
    PER_STATE_OR_PROVINCES_OF_DEATH = ("per:stateorprovince_of_death", True, 3, _E.PERSON, _SINGLE, (_E.STATE_OR_PROVINCE,), ("NNP",), 0.0050083303444366030)
    PER_STATE_OR_PROVINCES_OF_RESIDENCE = ("per:stateorprovinces_of_residence", True, 5, _E.PERSON, _LIST, (_E.STATE_OR_PROVINCE,), ("NNP",), 0.0066787379528178550)
    PER_AGE = ("per:age", True, 3, _E.PERSON, _SINGLE, (_E.NUMBER, _E.DURATION), ("CD", "NN"), 0.0483159977322951300)
    PER_DATE_OF_BIRTH = ("per:date_of_birth", True, 3, _E.PERSON, _SINGLE, (_E.DATE,), ("CD", "NN"), 0.0743584477791533200)
    PER_DATE_OF_DEATH = ("per:date_of_death", True, 3, _E.PERSON, _SINGLE, (_E.DATE,), ("CD", "NN"), 0.0189819046406960460)
    PER_CAUSE_OF_DEATH = ("per:cause_of_death", True, 3, _E.PERSON, _SINGLE, (_E.CAUSE_OF_DEATH,), ("NN",), 1.0123682475037891E-5)
    PER_CHARGES = ("per:charges", True, 5, _E.PERSON, _LIST, (_E.CRIMINAL_CHARGE,), ("NN",), 3.8614617440501670E-4)
    PER_RELIGION = ("per:religion", True, 3, _E.PERSON, _SINGLE, (_E.RELIGION,), ("NN",), 7.6650738739572610E-4)
    PER_TITLE = ("per:title", True, 15, _E.PERSON, _LIST, (_E.TITLE, _E.MODIFIER), ("NN",), 0.0334283995325751200)
    ORG_ALTERNATE_NAMES = ("org:alternate_names", True, 10, _E.ORGANIZATION, _LIST, (_E.ORGANIZATION, _E.MISC), ("NNP",), 0.0552058867767352000)
    ORG_CITY_OF_HEADQUARTERS = ("org:city_of_headquarters", True, 3, _E.ORGANIZATION, _SINGLE, (_E.CITY, _E.LOCATION), ("NNP",), 0.0555949254318473740)
    ORG_COUNTRY_OF_HEADQUARTERS = ("org:country_of_headquarters", True, 3, _E.ORGANIZATION, _SINGLE, (_E.COUNTRY, _E.NATIONALITY), ("NNP",), 0.0580217167451493100)
    ORG_FOUNDED_BY = ("org:founded_by", True, 3, _E.ORGANIZATION, _LIST, (_E.PERSON, _E.ORGANIZATION), ("NNP",), 0.0050806423621154450)
    ORG_LOC_OF_HEADQUARTERS = ("org:LOCATION_of_headquarters", True, 10, _E.ORGANIZATION, _LIST, (_E.CITY, _E.STATE_OR_PROVINCE, _E.COUNTRY), ("NNP",), 0.0555949254318473740)
    ORG_MEMBER_OF = ("org:member_of", True, 20, _E.ORGANIZATION, _LIST, (_E.ORGANIZATION, _E.STATE_OR_PROVINCE, _E.COUNTRY), ("NNP",), 0.0396298781687126140)
    ORG_MEMBERS = ("org:members", True, 20, _E.ORGANIZATION, _LIST, (_E.ORGANIZATION, _E.COUNTRY), ("NNP",), 0.0012220730987724312)
    ORG_PARENTS = ("org:parents", True, 10, _E.ORGANIZATION, _LIST, (_E.ORGANIZATION,), ("NNP",), 0.0550048593675880200)
    ORG_POLITICAL_RELIGIOUS_AFFILIATION = ("org:political/religious_affiliation", True, 5, _E.ORGANIZATION, _LIST, (_E.IDEOLOGY, _E.RELIGION), ("NN", "JJ"), 0.0059266929689578970)
    ORG_SHAREHOLDERS = ("org:shareholders", True, 10, _E.ORGANIZATION, _LIST, (_E.PERSON, _E.ORGANIZATION), ("NNP",), 1.1569922828614734E-5)
    ORG_STATE_OR_PROVINCES_OF_HEADQUARTERS = ("org:stateorprovince_of_headquarters", True, 3, _E.ORGANIZATION, _SINGLE, (_E.STATE_OR_PROVINCE,), ("NNP",), 0.0312619314829170100)
    ORG_SUBSIDIARIES = ("org:subsidiaries", True, 20, _E.ORGANIZATION, _LIST, (_E.ORGANIZATION,), ("NNP",), 0.0162412791706679320)
    ORG_TOP_MEMBERS_SLASH_EMPLOYEES = ("org:top_members/employees", True, 10, _E.ORGANIZATION, _LIST, (_E.PERSON,), ("NNP",), 0.0907168724184609800)
    ORG_DISSOLVED = ("org:dissolved", True, 3, _E.ORGANIZATION, _SINGLE, (_E.DATE,), ("CD", "NN"), 0.0023877428237553656)
    ORG_FOUNDED = ("org:founded", True, 3, _E.ORGANIZATION, _SINGLE, (_E.DATE,), ("CD", "NN"), 0.0796314401082944800)
    ORG_NUMBER_OF_EMPLOYEES_SLASH_MEMBERS = ("org:number_of_employees/members", True, 3, _E.ORGANIZATION, _SINGLE, (_E.NUMBER,), ("CD", "NN"), 0.0366274831946870950)
    ORG_WEBSITE = ("org:website", True, 3, _E.ORGANIZATION, _SINGLE, (_E.URL,), ("NNP", "NN"), 0.0051544006201478640)
    # Inverse types
    ORG_EMPLOYEES = ("org:employees_or_members", False, 68, _E.ORGANIZATION, _LIST, (_E.PERSON,), ("NNP", "NN"), 0.0051544006201478640)
    GPE_EMPLOYEES = ("gpe:employees_or_members", False, 10, _E.GPE, _LIST, (_E.PERSON,), ("NNP", "NN"), 0.0051544006201478640)
    ORG_STUDENTS = ("org:students", False, 50, _E.ORGANIZATION, _LIST, (_E.PERSON,), ("NNP", "NN"), 0.0051544006201478640)
    GPE_BIRTHS_IN_CITY = ("gpe:births_in_city", False, 50, _E.GPE, _LIST, (_E.PERSON,), ("NNP", "NN"), 0.0051544006201478640)
    GPE_BIRTHS_IN_STATE_OR_PROVINCE = ("gpe:births_in_stateorprovince", False, 50, _E.GPE, _LIST, (_E.PERSON,), ("NNP", "NN"), 0.0051544006201478640)
    GPE_BIRTHS_IN_COUNTRY = ("gpe:births_in_country", False, 50, _E.GPE, _LIST, (_E.PERSON,), ("NNP", "NN"), 0.0051544006201478640)
    GPE_RESIDENTS_IN_CITY = ("gpe:residents_of_city", False, 50, _E.GPE, _LIST, (_E.PERSON,), ("NNP", "NN"), 0.0051544006201478640)
    GPE_RESIDENTS_IN_STATE_OR_PROVINCE = ("gpe:residents_of_stateorprovince", False, 50, _E.GPE, _LIST, (_E.PERSON,), ("NNP", "NN"), 0.0051544006201478640)
    GPE_RESIDENTS_IN_COUNTRY = ("gpe:residents_of_country", False, 50, _E.GPE, _LIST, (_E.PERSON,), ("NNP", "NN"), 0.0051544006201478640)
    GPE_DEATHS_IN_CITY = ("gpe:deaths_in_city", False, 50, _E.GPE, _LIST, (_E.PERSON,), ("NNP", "NN"), 0.0051544006201478640)
    GPE_DEATHS_IN_STATE_OR_PROVINCE = ("gpe:deaths_in_stateorprovince", False, 50, _E.GPE, _LIST, (_E.PERSON,), ("NNP", "NN"), 0.0051544006201478640)
    GPE_DEATHS_IN_COUNTRY = ("gpe:deaths_in_country", False, 50, _E.GPE, _LIST, (_E.PERSON,), ("NNP", "NN"), 0.0051544006201478640)
    PER_HOLDS_SHARES_IN = ("per:holds_shares_in", False, 10, _E.PERSON, _LIST, (_E.ORGANIZATION,), ("NNP", "NN"), 0.0051544006201478640)
    GPE_HOLDS_SHARES_IN = ("gpe:holds_shares_in", False, 10, _E.GPE, _LIST, (_E.ORGANIZATION,), ("NNP", "NN"), 0.0051544006201478640)
    ORG_HOLDS_SHARES_IN = ("org:holds_shares_in", False, 10, _E.ORGANIZATION, _LIST, (_E.ORGANIZATION,), ("NNP", "NN"), 0.0051544006201478640)
    PER_ORGANIZATIONS_FOUNDED = ("per:organizations_founded", False, 3, _E.PERSON, _LIST, (_E.ORGANIZATION,), ("NNP", "NN"), 0.0051544006201478640)
    GPE_ORGANIZATIONS_FOUNDED = ("gpe:organizations_founded", False, 3, _E.GPE, _LIST, (_E.ORGANIZATION,), ("NNP", "NN"), 0.0051544006201478640)
    ORG_ORGANIZATIONS_FOUNDED = ("org:organizations_founded", False, 3, _E.ORGANIZATION, _LIST, (_E.ORGANIZATION,), ("NNP", "NN"), 0.0051544006201478640)
    PER_TOP_EMPLOYEE_OF = ("per:top_member_employee_of", False, 5, _E.PERSON, _LIST, (_E.ORGANIZATION,), ("NNP", "NN"), 0.0051544006201478640)
    GPE_MEMBER_OF = ("gpe:member_of", False, 10, _E.GPE, _LIST, (_E.ORGANIZATION,), ("NNP",), 0.0396298781687126140)
    GPE_SUBSIDIARIES = ("gpe:subsidiaries", False, 10, _E.GPE, _LIST, (_E.ORGANIZATION,), ("NNP",), 0.0396298781687126140)
    GPE_HEADQUARTERS_IN_CITY = ("gpe:headquarters_in_city", False, 50, _E.GPE, _LIST, (_E.ORGANIZATION,), ("NNP", "NN"), 0.0051544006201478640)
    GPE_HEADQUARTERS_IN_STATE_OR_PROVINCE = ("gpe:headquarters_in_stateorprovince", False, 50, _E.GPE, _LIST, (_E.ORGANIZATION,), ("NNP", "NN"), 0.0051544006201478640)
    GPE_HEADQUARTERS_IN_COUNTRY = ("gpe:headquarters_in_country", False, 50, _E.GPE, _LIST, (_E.ORGANIZATION,), ("NNP", "NN"), 0.0051544006201478640)

    def __init__(
        self,
        canonical_name: str,
        is_original_relation: bool,
        query_limit: int,
        entity_type: EntityType,
        cardinality: Cardinality,
        valid_ner_labels: Iterable[EntityType],
        valid_pos_prefixes: Iterable[str],
        prior_probability: float,
    ):
        self.canonical_name = canonical_name
        self.is_original_relation = is_original_relation
        self.query_limit = query_limit
        self.entity_type = entity_type
        self.cardinality = cardinality
        self.valid_ner_labels: FrozenSet[EntityType] = frozenset(valid_ner_labels)
        self.valid_pos_prefixes: FrozenSet[str] = frozenset(valid_pos_prefixes)
        self.prior_probability = prior_probability

    def accepts_object(self, object_type: EntityType) -> bool:
        """True if ``object_type`` is a permitted object for this relation."""
        return object_type in self.valid_ner_labels

    def __str__(self) -> str:
        return self.canonical_name


_SLASH_PATTERN = re.compile(r"[Ss][Ll][Aa][Ss][Hh]")
_MISSING = object()


class RelationTypeLookup:
    """Memoizing name -> RelationType resolver.

    Hits and misses are both cached under the caller's original string.
    Entries are never evicted and stay valid for the lifetime of the
    process. Reads are lock-free; inserts take a lock, and racing threads
    store the same value for the same key.
    """

    def __init__(self):
        self._cache: Dict[str, Optional[RelationType]] = {}
        self._lock = threading.Lock()

    def __call__(self, name: Optional[str]) -> Optional[RelationType]:
        return self.lookup(name)

    def __len__(self) -> int:
        return len(self._cache)

    def __contains__(self, name: str) -> bool:
        return name in self._cache

    def lookup(self, name: Optional[str]) -> Optional[RelationType]:
        """Resolve a relation name, or return None if it names no relation.

        Parameters
        ----------
        name : Optional[str]
            Canonical name (``per:title``), member name (``PER_TITLE``), or
            a spelling where "slash" stands in for ``/``.

        Returns
        -------
        Optional[RelationType]
            The matching relation, or None.
        """
        if name is None:
            return None
        cached = self._cache.get(name, _MISSING)
        if cached is not _MISSING:
            return cached

        relation = self._resolve(name)
        with self._lock:
            self._cache.setdefault(name, relation)
        return relation

    @staticmethod
    def _resolve(name: str) -> Optional[RelationType]:
        for relation in RelationType:
            if relation.canonical_name == name or relation.name == name:
                return relation

        normalized = _SLASH_PATTERN.sub("/", name.lower())
        for relation in RelationType:
            if relation.canonical_name.lower() == normalized:
                return relation
        return None

    def clear(self) -> None:
        with self._lock:
            self._cache.clear()


# Process-wide default cache used by the module-level helpers.
RELATION_LOOKUP = RelationTypeLookup()


def lookup_entity_type(name: Optional[str]) -> Optional[EntityType]:
    """Find an entity type by canonical name, then by short code.

    Matching is case-insensitive. Empty or missing names yield None.
    """
    if not name:
        return None
    name = name.upper()
    for entity_type in EntityType:
        if entity_type.canonical_name == name:
            return entity_type
    for entity_type in EntityType:
        if entity_type.short_name == name:
            return entity_type
    return None


def lookup_relation_type(
    name: Optional[str], cache: RelationTypeLookup = RELATION_LOOKUP
) -> Optional[RelationType]:
    """Find a relation type by name through ``cache``."""
    return cache.lookup(name)


def plausibly_has_relation(entity_type: EntityType, object_type: EntityType) -> bool:
    """Whether any relation links a subject of ``entity_type`` to ``object_type``.

    A coarse filter for candidate generation; decoding checks the concrete
    relation instead.
    """
    return any(
        relation.entity_type == entity_type and object_type in relation.valid_ner_labels
        for relation in RelationType
    )


def relation_types_for(entity_type: EntityType) -> List[RelationType]:
    """All relations whose subject is ``entity_type``, in table order."""
    return [relation for relation in RelationType if relation.entity_type == entity_type]
