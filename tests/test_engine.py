"""Tests for the recursive type inference engine."""

import json
import threading

import pytest

from typeatlas.catalog import TypeKind
from typeatlas.engine import (
    InferenceContext,
    InferenceDepthError,
    TypeInferrer,
    is_iso8601,
    parse,
)
from typeatlas.reference import ReferenceMatcher, ReferenceSchema


def _fields(output, name):
    t = output.get(name)
    assert t is not None, f"{name} not in catalog"
    return {f.name: (f.type_ref, f.required) for f in t.fields}


def _all_fields(output):
    for t in output.types:
        yield from t.fields


class TestScenarios:
    def test_flat_record(self):
        out = parse({"id": 1, "name": "Ann"}, root_name="User")
        assert [t.name for t in out.types] == ["User"]
        assert out.types[0].kind is TypeKind.RECORD
        assert _fields(out, "User") == {"id": ("number", True), "name": ("string", True)}
        assert out.root_type == "User"

    def test_empty_array_is_unknown_array(self):
        out = parse({"tags": []})
        assert _fields(out, "ApiResponse")["tags"] == ("unknown[]", True)

    def test_iso_timestamp_is_temporal(self):
        out = parse({"createdAt": "2024-01-01T00:00:00Z"})
        assert _fields(out, "ApiResponse")["createdAt"] == ("Date", True)

    def test_same_shape_shares_one_type(self):
        out = parse({"a": {"x": 1}, "b": {"x": 2}})
        fields = _fields(out, "ApiResponse")
        assert fields["a"][0] == fields["b"][0] == "A"
        assert [t.name for t in out.types] == ["ApiResponse", "A"]


class TestClassification:
    def test_null_is_unknown_and_optional(self):
        out = parse({"nick": None})
        assert _fields(out, "ApiResponse")["nick"] == ("unknown", False)

    def test_numbers_not_split(self):
        out = parse({"i": 1, "f": 1.5})
        fields = _fields(out, "ApiResponse")
        assert fields["i"][0] == fields["f"][0] == "number"

    def test_boolean(self):
        assert _fields(parse({"ok": True}), "ApiResponse")["ok"] == ("boolean", True)

    @pytest.mark.parametrize("value,expected", [
        ("2024-01-01T00:00:00Z", True),
        ("2024-01-01T10:20:30.123+02:00", True),
        ("2024-01-01T10:20:30-05:00", True),
        ("2024-01-01", False),
        ("2024-01-01 10:20:30Z", False),
        ("2024-01-01T10:20:30", False),
        ("hello", False),
    ])
    def test_iso8601_pattern(self, value, expected):
        assert is_iso8601(value) is expected

    def test_array_of_primitives(self):
        out = parse({"ids": [1, 2, 3], "names": ["a"]})
        fields = _fields(out, "ApiResponse")
        assert fields["ids"][0] == "number[]"
        assert fields["names"][0] == "string[]"

    def test_array_samples_first_element_only(self):
        out = parse({"mixed": [1, "two", None]})
        assert _fields(out, "ApiResponse")["mixed"][0] == "number[]"

    def test_array_of_records_uses_item_hint(self):
        out = parse({"items": [{"id": 1}, {"other": "x"}]})
        assert _fields(out, "ApiResponse")["items"][0] == "ItemsItem[]"
        assert _fields(out, "ItemsItem") == {"id": ("number", True)}
        assert len(out.types) == 2

    def test_nested_arrays(self):
        out = parse({"grid": [[1, 2], [3]]})
        assert _fields(out, "ApiResponse")["grid"][0] == "number[][]"

    def test_unknown_runtime_kind_falls_back(self):
        out = parse({"weird": {1, 2}})
        assert _fields(out, "ApiResponse")["weird"] == ("unknown", True)

    def test_primitive_root(self):
        out = parse("just a string")
        assert out.root_type == "string"
        assert out.types == []

    def test_array_root(self):
        out = parse([{"id": 1}], root_name="Users")
        assert out.root_type == "UsersItem[]"
        assert [t.name for t in out.types] == ["UsersItem"]

    def test_field_order_preserved(self):
        out = parse({"z": 1, "a": 2, "m": 3})
        assert [f.name for f in out.get("ApiResponse").fields] == ["z", "a", "m"]


class TestNamingThroughEngine:
    def test_child_hint_is_pascal_field_name(self):
        out = parse({"billing_address": {"street": "x"}})
        assert _fields(out, "ApiResponse")["billing_address"][0] == "BillingAddress"

    def test_same_field_name_different_shapes_get_counter(self):
        out = parse({
            "home": {"address": {"street": "Main"}},
            "work": {"address": {"zip": 12345}, "floor": 3},
        })
        assert _fields(out, "Home")["address"][0] == "Address"
        assert _fields(out, "Work")["address"][0] == "Address1"
        assert _fields(out, "Address") == {"street": ("string", True)}
        assert _fields(out, "Address1") == {"zip": ("number", True)}

    def test_root_name_normalized(self):
        out = parse({"id": 1}, root_name="user profile")
        assert out.root_type == "UserProfile"


class TestCycleContainment:
    def test_self_similar_nesting_reuses_root(self):
        value = {"name": "a", "child": {"name": "b", "child": {"name": "c", "child": {}}}}
        out = parse(value, root_name="Node")
        assert _fields(out, "Node")["child"][0] == "Node"
        assert [t.name for t in out.types] == ["Node"]

    def test_repeated_shape_across_branches(self):
        leaf = {"id": 1, "label": "x"}
        out = parse({"left": {"node": leaf}, "right": {"node": dict(leaf)}})
        fields = _fields(out, "ApiResponse")
        assert fields["left"][0] == fields["right"][0] == "Left"
        assert len(out.types) == 3

    def test_deep_chain_terminates(self):
        value = {"next": None}
        for _ in range(200):
            value = {"next": value}
        out = parse(value)
        assert [t.name for t in out.types] == ["ApiResponse"]
        assert _fields(out, "ApiResponse")["next"] == ("ApiResponse", True)


class TestReferencePrecedence:
    @pytest.fixture
    def references(self):
        return ReferenceMatcher([
            ReferenceSchema(name="Money", fields={"amount": "number", "currency": "string"}),
        ])

    def test_matched_record_uses_schema_name(self, references):
        out = TypeInferrer(references).parse({"price": {"amount": 5, "currency": "EUR", "tax": 1}})
        assert _fields(out, "ApiResponse")["price"][0] == "Money"
        assert [t.name for t in out.types] == ["ApiResponse"]

    def test_reference_wins_over_fingerprint(self, references):
        out = TypeInferrer(references).parse({"a": {"amount": 1, "currency": "X"}, "b": {"amount": 2}})
        fields = _fields(out, "ApiResponse")
        assert fields["a"][0] == "Money"
        assert fields["b"][0] == "B"

    def test_root_can_match_reference(self, references):
        out = TypeInferrer(references).parse({"amount": 1, "currency": "EUR"})
        assert out.root_type == "Money"
        assert out.types == []

    def test_generated_record_never_takes_schema_name(self):
        schemas = [ReferenceSchema(name="GeoPoint", fields={"lat": "number", "lng": "number"})]
        out = parse({"pos": {"lat": 1, "lng": 2}, "geoPoint": {"lat": "north"}}, references=schemas)
        fields = _fields(out, "ApiResponse")
        assert fields["pos"][0] == "GeoPoint"
        assert fields["geoPoint"][0] == "GeoPoint1"
        assert out.get("GeoPoint") is None
        assert _fields(out, "GeoPoint1") == {"lat": ("string", True)}

    def test_root_name_clashing_with_schema_is_suffixed(self, references):
        out = TypeInferrer(references).parse({"amount": "lots"}, root_name="Money")
        assert out.root_type == "Money1"

    def test_schema_list_accepted_by_parse(self):
        schemas = [ReferenceSchema(name="Point", fields={"x": "number", "y": "number"})]
        out = parse({"pos": {"x": 1, "y": 2}}, references=schemas)
        assert _fields(out, "ApiResponse")["pos"][0] == "Point"


class TestProperties:
    SAMPLE = {
        "id": 7,
        "user": {"name": "Ann", "email": None, "address": {"city": "Oslo"}},
        "orders": [{"id": 1, "total": 9.5, "placedAt": "2024-05-01T12:00:00Z"}],
        "billing": {"address": {"city": "Bergen", "zip": "5003"}},
        "flags": [],
    }

    def test_deterministic(self):
        first = parse(self.SAMPLE)
        second = parse(self.SAMPLE)
        assert [t.to_dict() for t in first.types] == [t.to_dict() for t in second.types]

    def test_names_unique(self):
        out = parse(self.SAMPLE)
        names = [t.name for t in out.types]
        assert len(names) == len(set(names))

    def test_required_matches_null(self):
        out = parse(self.SAMPLE)
        optional = {(t.name, f.name) for t in out.types for f in t.fields if not f.required}
        assert optional == {("User", "email")}

    def test_root_first(self):
        out = parse(self.SAMPLE)
        assert out.types[0].name == out.root_type == "ApiResponse"

    def test_output_is_json_serializable(self):
        out = parse(self.SAMPLE)
        data = json.loads(out.to_json())
        assert data["metadata"]["rootType"] == "ApiResponse"
        assert data["metadata"]["source"] == "parser"
        assert "T" in data["metadata"]["timestamp"]
        assert {t["name"] for t in data["types"]} == {t.name for t in out.types}

    def test_every_record_ref_resolves(self):
        out = parse(self.SAMPLE)
        names = {t.name for t in out.types}
        primitives = {"string", "number", "boolean", "Date", "unknown"}
        for f in _all_fields(out):
            base = f.type_ref.replace("[]", "")
            assert base in names or base in primitives


class TestRunIsolation:
    def test_state_not_shared_between_calls(self):
        inferrer = TypeInferrer()
        first = inferrer.parse({"a": {"x": 1}})
        second = inferrer.parse({"a": {"x": 1}})
        assert [t.name for t in first.types] == [t.name for t in second.types] == ["ApiResponse", "A"]

    def test_fresh_context_per_parse(self):
        ctx = InferenceContext()
        TypeInferrer().infer({"a": {"x": 1}}, "Root", ctx)
        assert len(ctx.catalog) == 2
        assert len(ctx.seen) == 2

    def test_concurrent_parses(self):
        inferrer = TypeInferrer()
        results = []

        def worker(i):
            results.append(inferrer.parse({f"field{i}": {"v": i}, "shared": {"k": "x"}}, root_name=f"Root{i}"))

        threads = [threading.Thread(target=worker, args=(i,)) for i in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len(results) == 8
        for out in results:
            assert len(out.types) == 3
            assert out.get("Shared") is not None


class TestDepthLimit:
    def test_exceeding_limit_raises(self):
        with pytest.raises(InferenceDepthError):
            parse({"a": {"b": {"c": 1}}}, max_depth=1)

    def test_within_limit(self):
        out = parse({"a": {"b": 1}}, max_depth=2)
        assert len(out.types) == 2

    def test_no_limit_by_default(self):
        value = 1
        for _ in range(50):
            value = [value]
        out = parse({"deep": value})
        assert _fields(out, "ApiResponse")["deep"][0] == "number" + "[]" * 50
