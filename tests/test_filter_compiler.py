"""Tests for FilterCompiler and ProductQuery."""

import re

import pytest

from storefront.models.catalog import SpecificationDefinition
from storefront.models.filters import FilterRequest
from storefront.services.category_tree_service import CategoryTreeService
from storefront.services.filter_compiler import (
    BooleanMatcher,
    EnumeratedMatcher,
    FilterCompiler,
    NumericMatcher,
    ProductQuery,
    build_matcher,
)
from storefront.services.specification_schema_service import SpecificationSchemaService


class TestFilterCompiler:
    @pytest.fixture
    def compiler(self, repository, cache):
        return FilterCompiler(
            repository,
            CategoryTreeService(repository, cache),
            SpecificationSchemaService(repository, cache),
        )

    def _ids(self, repository, compiled):
        return {p["_id"] for p in repository.products if compiled.query.matches(p)}

    def test_category_scope_covers_subtree(self, compiler, repository):
        compiled = compiler.compile(FilterRequest(category="laptops"))

        assert set(compiled.query.category_ids) == {"C1", "C2"}
        assert set(compiled.descendant_ids) == {"C1", "C2"}
        assert compiled.query.brand_ids is None

    def test_subcategories_override_scope(self, compiler):
        """Test that explicit subcategories narrow to exactly those categories."""
        compiled = compiler.compile(FilterRequest(category="laptops", subcategories=["gaming-laptops"]))

        assert compiled.query.category_ids == ("C2",)
        assert set(compiled.descendant_ids) == {"C1", "C2"}

    def test_unresolvable_subcategories_match_nothing(self, compiler, repository):
        """Test that an empty explicit scope short-circuits instead of matching everything."""
        result = compiler.compile(FilterRequest(category="laptops", subcategories=["tablets"]))

        assert result is None
        assert repository.product_queries == 0

    def test_unknown_category_short_circuits(self, compiler, repository):
        """Test that an unknown category compiles to nothing without touching products."""
        assert compiler.compile(FilterRequest(category="does-not-exist")) is None
        assert compiler.compile(FilterRequest()) is None
        assert repository.product_queries == 0

    def test_brands_resolve_case_insensitively(self, compiler, repository):
        compiled = compiler.compile(FilterRequest(category="laptops", brands=["ACER"]))

        assert compiled.query.brand_ids == ("B1",)
        assert self._ids(repository, compiled) == {"P1", "P3"}

    def test_brands_resolve_by_slug(self, compiler):
        compiled = compiler.compile(FilterRequest(category="laptops", brands=["asus"]))

        assert compiled.query.brand_ids == ("B2",)

    def test_unresolvable_brands_omit_brand_filter(self, compiler, repository):
        """Test that brands that match nothing leave the brand constraint off."""
        compiled = compiler.compile(FilterRequest(category="laptops", brands=["Dell"]))

        assert compiled.query.brand_ids is None
        assert self._ids(repository, compiled) == {"P1", "P2", "P3"}

    def test_price_min_only(self, compiler, repository):
        """Test that a lower bound alone imposes no upper bound."""
        compiled = compiler.compile(FilterRequest(category="laptops", price_min=60000))

        assert self._ids(repository, compiled) == {"P2", "P3"}
        assert {"price": {"$gte": 60000}} in compiled.query.to_mongo()["$and"]

    def test_no_price_bounds_adds_no_clause(self, compiler):
        compiled = compiler.compile(FilterRequest(category="laptops"))

        assert not any("price" in clause for clause in compiled.query.to_mongo()["$and"])

    def test_price_range(self, compiler, repository):
        compiled = compiler.compile(FilterRequest(category="laptops", price_min=55000, price_max=70000))

        assert self._ids(repository, compiled) == {"P3"}

    def test_search_is_case_insensitive_on_name_and_description(self, compiler, repository):
        assert self._ids(repository, compiler.compile(FilterRequest(category="laptops", search="nitro"))) == {"P3"}
        assert self._ids(repository, compiler.compile(FilterRequest(category="laptops", search="RTX"))) == {"P2"}

    def test_search_escapes_regex_metacharacters(self, compiler, repository):
        """Test that search text is matched literally."""
        compiled = compiler.compile(FilterRequest(category="laptops", search="a.*("))

        search_clause = compiled.query.to_mongo()["$and"][-1]
        assert search_clause["$or"][0]["name"] == {"$regex": r"a\.\*\(", "$options": "i"}
        assert self._ids(repository, compiled) == set()

    def test_number_specification_matches_numbers_and_strings(self, compiler, repository):
        """Test that a numeric selection matches stored numbers and numeric strings."""
        compiled = compiler.compile(FilterRequest(category="laptops", specifications={"ram": ["16", "32"]}))

        assert self._ids(repository, compiled) == {"P2", "P3"}
        assert {"specifications.ram": {"$in": [16.0, 32.0, "16", "32"]}} in compiled.query.to_mongo()["$and"]

    def test_unparseable_number_selection_adds_no_constraint(self, compiler, repository):
        """Test that a specification whose selections all fail to parse is dropped."""
        compiled = compiler.compile(FilterRequest(category="laptops", specifications={"ram": ["lots"]}))

        assert compiled.query.specifications == ()
        assert self._ids(repository, compiled) == {"P1", "P2", "P3"}

    def test_partially_parseable_number_selection_keeps_valid_values(self, compiler, repository):
        compiled = compiler.compile(FilterRequest(category="laptops", specifications={"ram": ["lots", "8"]}))

        assert self._ids(repository, compiled) == {"P1"}

    def test_boolean_specification(self, compiler, repository):
        compiled = compiler.compile(FilterRequest(category="laptops", specifications={"touchscreen": ["TRUE"]}))

        assert self._ids(repository, compiled) == {"P3"}

    def test_enumerated_specification_is_disjunctive(self, compiler, repository):
        compiled = compiler.compile(
            FilterRequest(category="laptops", specifications={"processor": ["AMD Ryzen 7", "Intel Core i5"]})
        )

        assert self._ids(repository, compiled) == {"P1", "P2", "P3"}

    def test_specifications_are_conjunctive(self, compiler, repository):
        compiled = compiler.compile(
            FilterRequest(
                category="laptops",
                specifications={"processor": ["Intel Core i5"], "ram": ["32"]},
            )
        )

        assert self._ids(repository, compiled) == {"P2"}

    def test_unknown_specification_is_ignored(self, compiler, repository):
        compiled = compiler.compile(FilterRequest(category="laptops", specifications={"weight": ["2"]}))

        assert compiled.query.specifications == ()

    def test_specification_ids_match_case_insensitively(self, compiler):
        compiled = compiler.compile(FilterRequest(category="laptops", specifications={"RAM": ["8"]}))

        assert compiled.query.specifications[0].spec_id == "ram"

    def test_subcategory_request_uses_root_schema(self, compiler, repository):
        """Test that specification types for a child category come from the schema root."""
        compiled = compiler.compile(FilterRequest(category="gaming-laptops", specifications={"ram": ["16"]}))

        assert isinstance(compiled.query.specifications[0], NumericMatcher)
        assert self._ids(repository, compiled) == {"P3"}


class TestBuildMatcher:
    def test_number(self):
        definition = SpecificationDefinition(id="ram", name="RAM", type="NUMBER")

        matcher = build_matcher(definition, ["16", "x"])

        assert matcher == NumericMatcher("ram", (16.0,), ("16",))

    def test_boolean(self):
        definition = SpecificationDefinition(id="touch", name="Touch", type="BOOLEAN")

        assert build_matcher(definition, ["true", "Yes"]) == BooleanMatcher("touch", (True, False))

    def test_enumerated(self):
        definition = SpecificationDefinition(id="color", name="Color", type="SELECT")

        assert build_matcher(definition, ["Black"]) == EnumeratedMatcher("color", ("Black",))
        assert build_matcher(definition, []) is None


class TestProductQuery:
    def test_numeric_matcher_does_not_confuse_booleans(self):
        """Test that stored booleans never satisfy a numeric selection."""
        query = ProductQuery(category_ids=("C1",), specifications=(NumericMatcher("ram", (1.0,), ("1",)),))

        assert not query.matches({"category_id": "C1", "specifications": {"ram": True}})
        assert query.matches({"category_id": "C1", "specifications": {"ram": 1}})

    def test_array_values_match_any_element(self):
        query = ProductQuery(category_ids=("C1",), specifications=(EnumeratedMatcher("ports", ("HDMI",)),))

        assert query.matches({"category_id": "C1", "specifications": {"ports": ["USB-C", "HDMI"]}})
        assert not query.matches({"category_id": "C1", "specifications": {}})

    def test_non_dict_specifications_never_match(self):
        query = ProductQuery(category_ids=("C1",), specifications=(EnumeratedMatcher("color", ("Black",)),))

        assert not query.matches({"category_id": "C1", "specifications": "Black"})

    def test_to_mongo_combines_clauses(self):
        query = ProductQuery(
            category_ids=("C1", "C2"),
            brand_ids=("B1",),
            price_min=10.0,
            price_max=20.0,
            specifications=(BooleanMatcher("touch", (True,)),),
        )

        assert query.to_mongo() == {
            "$and": [
                {"category_id": {"$in": ["C1", "C2"]}},
                {"brand_id": {"$in": ["B1"]}},
                {"price": {"$gte": 10.0, "$lte": 20.0}},
                {"specifications.touch": {"$in": [True, "true"]}},
            ]
        }

    def test_category_scope_drops_other_filters(self):
        query = ProductQuery(category_ids=("C1",), brand_ids=("B1",), price_min=5.0, search="x")

        assert query.category_scope() == ProductQuery(category_ids=("C1",))
        assert query.without_brands().brand_ids is None
        assert query.without_brands().price_min == 5.0


_MISSING = object()


def _field(document, path):
    value = document
    for part in path.split("."):
        if not isinstance(value, dict) or part not in value:
            return _MISSING
        value = value[part]
    return value


def _bson_equal(a, b):
    # BSON keeps booleans, numbers and strings apart; numbers compare by value
    if isinstance(a, bool) or isinstance(b, bool):
        return isinstance(a, bool) and isinstance(b, bool) and a == b
    if isinstance(a, (int, float)) and isinstance(b, (int, float)):
        return float(a) == float(b)
    return type(a) is type(b) and a == b


def _field_matches(value, condition):
    candidates = [] if value is _MISSING else [value, *(value if isinstance(value, list) else [])]
    for operator, operand in condition.items():
        if operator == "$in":
            if not any(_bson_equal(c, o) for c in candidates for o in operand):
                return False
        elif operator in ("$gte", "$lte"):
            numbers = [c for c in candidates if isinstance(c, (int, float)) and not isinstance(c, bool)]
            compare = (lambda c: c >= operand) if operator == "$gte" else (lambda c: c <= operand)
            if not any(compare(c) for c in numbers):
                return False
        elif operator == "$regex":
            flags = re.IGNORECASE if "i" in condition.get("$options", "") else 0
            if not any(isinstance(c, str) and re.search(operand, c, flags) for c in candidates):
                return False
        elif operator != "$options":
            raise AssertionError(f"Unsupported operator {operator}")
    return True


def evaluate_mongo(query, document):
    """Evaluate the subset of MongoDB query operators that ProductQuery.to_mongo renders."""
    for key, condition in query.items():
        if key == "$and":
            if not all(evaluate_mongo(clause, document) for clause in condition):
                return False
        elif key == "$or":
            if not any(evaluate_mongo(clause, document) for clause in condition):
                return False
        elif not _field_matches(_field(document, key), condition):
            return False
    return True


class TestMongoRenderingAgreement:
    @pytest.fixture
    def irregular_repository(self, repository):
        repository.products.extend(
            [
                {
                    "_id": "P4",
                    "name": "Asus TUF (2025)",
                    "description": "Gaming laptop",
                    "price": 70000,
                    "category_id": "C2",
                    "brand_id": "B2",
                    "specifications": {"ram": ["16", 32], "processor": ["AMD Ryzen 7"], "touchscreen": "true"},
                },
                {
                    "_id": "P5",
                    "name": "Refurbished notebook",
                    "description": None,
                    "price": 1000,
                    "category_id": "C1",
                    "brand_id": None,
                    "specifications": {"ram": True, "touchscreen": 1},
                },
                {"_id": "P6", "name": "No specs", "price": 2000, "category_id": "C1", "specifications": "n/a"},
            ]
        )
        return repository

    @pytest.fixture
    def compiler(self, irregular_repository, cache):
        return FilterCompiler(
            irregular_repository,
            CategoryTreeService(irregular_repository, cache),
            SpecificationSchemaService(irregular_repository, cache),
        )

    @pytest.mark.parametrize(
        "request_params",
        [
            {},
            {"brands": ["Acer"]},
            {"brands": ["asus", "nobody"]},
            {"price_min": 55000},
            {"price_min": 1000, "price_max": 60000},
            {"search": "GAMING"},
            {"search": "(2025)"},
            {"subcategories": ["gaming-laptops"]},
            {"specifications": {"ram": ["16", "32"]}},
            {"specifications": {"ram": ["8.0"]}},
            {"specifications": {"ram": ["1"]}},
            {"specifications": {"touchscreen": ["true"]}},
            {"specifications": {"touchscreen": ["false", "Yes"]}},
            {"specifications": {"processor": ["AMD Ryzen 7"]}},
            {"brands": ["Asus"], "price_max": 75000, "specifications": {"ram": ["32"], "touchscreen": ["true"]}},
        ],
    )
    def test_mongo_query_selects_same_products(self, compiler, irregular_repository, request_params):
        """Test that the MongoDB rendering and the in-process evaluation agree on every product."""
        compiled = compiler.compile(FilterRequest(category="laptops", **request_params))
        mongo_query = compiled.query.to_mongo()

        for product in irregular_repository.products:
            assert evaluate_mongo(mongo_query, product) == compiled.query.matches(product), product["_id"]
