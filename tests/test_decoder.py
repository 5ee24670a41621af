"""Tests for forward-compatible response decoding."""

import json

import pytest

from tinker_http.core.decoder import decode, decode_json_body, decode_many, describe_value, normalize_keys
from tinker_http.core.domain.models import (
    ErrorBody,
    GetInfoResponse,
    GetServerCapabilitiesResponse,
    SupportedModel,
)
from tinker_http.core.errors import DecodeError


class TestDecodeSupportedModel:
    """Tests for decoding single SupportedModel payloads."""

    def test_unknown_fields_preserved(self):
        """Keys the model does not declare end up in unknown_fields."""
        model = decode(
            SupportedModel,
            {
                "model_name": "meta-llama/Meta-Llama-3-8B",
                "model_id": "llama-3-8b",
                "arch": "llama",
                "context_window": 8192,
                "tags": ["base"],
            },
        )

        assert model.model_name == "meta-llama/Meta-Llama-3-8B"
        assert model.model_id == "llama-3-8b"
        assert model.arch == "llama"
        assert model.unknown_fields == {"context_window": 8192, "tags": ["base"]}

    def test_dump_re_emits_unknown_fields(self):
        payload = {"model_name": "Qwen/Qwen3-8B", "arch": "qwen3", "quantization": "fp8"}

        dumped = decode(SupportedModel, payload).model_dump(exclude_none=True)

        assert dumped == payload

    def test_legacy_scalar(self):
        """A bare string populates only model_name."""
        model = decode(SupportedModel, "Qwen/Qwen3-8B")

        assert model.model_name == "Qwen/Qwen3-8B"
        assert model.model_id is None
        assert model.arch is None
        assert model.unknown_fields == {}

    def test_camel_case_keys(self):
        model = decode(SupportedModel, {"modelName": "Qwen/Qwen3-8B", "modelId": "qwen3-8b"})

        assert model.model_name == "Qwen/Qwen3-8B"
        assert model.model_id == "qwen3-8b"

    def test_from_json_bytes(self):
        model = decode(SupportedModel, b'{"model_name": "Qwen/Qwen3-8B", "extra": true}')

        assert model.model_name == "Qwen/Qwen3-8B"
        assert model.unknown_fields == {"extra": True}

    def test_type_mismatch(self):
        """A declared field with the wrong type raises DecodeError with details."""
        with pytest.raises(DecodeError) as excinfo:
            decode(SupportedModel, {"model_name": 123})

        assert excinfo.value.field == "model_name"
        assert excinfo.value.expected == "str"
        assert excinfo.value.actual == "integer"

    def test_non_object_without_legacy_rule(self):
        with pytest.raises(DecodeError) as excinfo:
            decode(GetInfoResponse, "llama-3-8b")

        assert excinfo.value.actual == "string"

    def test_missing_required_field(self):
        with pytest.raises(DecodeError) as excinfo:
            decode(GetInfoResponse, {"model_data": {}})

        assert excinfo.value.field == "model_id"
        assert excinfo.value.actual == "missing"

    def test_non_string_keys_normalized(self):
        model = decode(SupportedModel, {"model_name": "x", 1: "one"})

        assert model.unknown_fields == {"1": "one"}


class TestDecodeCapabilities:
    """Tests for the capabilities response and its mixed list formats."""

    def test_object_entries(self):
        response = decode(
            GetServerCapabilitiesResponse,
            {
                "supported_models": [
                    {"model_id": "llama-3-8b", "model_name": "meta-llama/Meta-Llama-3-8B", "arch": "llama"},
                    {"model_id": "qwen2-72b", "model_name": "Qwen/Qwen2-72B", "arch": "qwen2"},
                ]
            },
        )

        assert response.model_names() == ["meta-llama/Meta-Llama-3-8B", "Qwen/Qwen2-72B"]
        assert response.supported_models[1].arch == "qwen2"

    def test_mixed_entries_and_nulls(self):
        """Legacy strings, objects and nulls can be mixed; nulls are dropped."""
        response = decode(
            GetServerCapabilitiesResponse,
            {"supported_models": ["legacy-model", None, {"model_name": "new-model", "arch": "llama"}]},
        )

        assert response.model_names() == ["legacy-model", "new-model"]
        assert response.supported_models[0].arch is None

    def test_missing_or_null_list(self):
        assert decode(GetServerCapabilitiesResponse, {}).supported_models == []
        assert decode(GetServerCapabilitiesResponse, {"supported_models": None}).supported_models == []

    def test_unknown_top_level_fields(self):
        response = decode(GetServerCapabilitiesResponse, {"supported_models": [], "region": "us-east"})

        assert response.unknown_fields == {"region": "us-east"}

    def test_nested_error_path(self):
        with pytest.raises(DecodeError) as excinfo:
            decode(GetServerCapabilitiesResponse, {"supported_models": [{"model_name": "ok"}, 42]})

        assert excinfo.value.field.startswith("supported_models.1")
        assert excinfo.value.actual == "integer"


class TestDecodeInfo:
    """Tests for GetInfoResponse and ErrorBody."""

    def test_get_info_nested_unknown_fields(self):
        info = decode(
            GetInfoResponse,
            {
                "model_id": "m-1",
                "model_data": {"arch": "llama", "tokenizer_id": "tok", "vocab_size": 128256},
                "is_lora": True,
                "lora_rank": 32,
                "type": "get_info",
                "created_at": "2024-01-01",
            },
        )

        assert info.model_data.arch == "llama"
        assert info.model_data.unknown_fields == {"vocab_size": 128256}
        assert info.lora_rank == 32
        assert info.unknown_fields == {"created_at": "2024-01-01"}

    def test_error_category_normalized(self):
        assert decode(ErrorBody, {"category": "User"}).category == "user"
        assert decode(ErrorBody, {"category": "weird"}).category == "unknown"
        assert decode(ErrorBody, {"message": "boom"}).category is None


class TestDecodeMany:
    """Tests for batch decoding."""

    records = [{"model_name": "a"}, {"model_name": 5}, "c"]

    def test_fail_fast_by_default(self):
        with pytest.raises(DecodeError) as excinfo:
            decode_many(SupportedModel, self.records)

        assert excinfo.value.field == "[1].model_name"
        assert "field '[1].model_name'" in str(excinfo.value)
        assert isinstance(excinfo.value.__cause__, DecodeError)
        assert excinfo.value.__cause__.field == "model_name"

    def test_skip_invalid(self):
        batch = decode_many(SupportedModel, self.records, skip_invalid=True)

        assert [m.model_name for m in batch] == ["a", "c"]
        assert len(batch) == 2
        assert [index for index, _ in batch.errors] == [1]
        assert batch.errors[0][1].field == "model_name"

    def test_accepts_generators(self):
        batch = decode_many(SupportedModel, (name for name in ["a", "b"]))

        assert [m.model_name for m in batch] == ["a", "b"]

    def test_json_array_body(self):
        batch = decode_many(SupportedModel, json.dumps(["a", {"model_name": "b"}]).encode())

        assert len(batch) == 2

    @pytest.mark.parametrize("records", [None, {"model_name": "a"}, 5])
    def test_rejects_non_arrays(self, records):
        with pytest.raises(DecodeError) as excinfo:
            decode_many(SupportedModel, records)

        assert excinfo.value.field == "<root>"
        assert excinfo.value.expected == "array"


class TestHelpers:
    """Tests for decoding helpers."""

    def test_decode_json_body(self):
        assert decode_json_body(b"") is None
        assert decode_json_body(b'{"a": 1}') == {"a": 1}

    def test_decode_json_body_invalid(self):
        with pytest.raises(DecodeError) as excinfo:
            decode_json_body(b"{not json")

        assert excinfo.value.field == "<body>"

    def test_describe_value(self):
        assert describe_value(True) == "boolean"
        assert describe_value(1.5) == "number"
        assert describe_value(None) == "null"
        assert describe_value([]) == "array"

    def test_normalize_keys_recursive(self):
        assert normalize_keys({1: {2: [{3: "x"}]}}) == {"1": {"2": [{"3": "x"}]}}
