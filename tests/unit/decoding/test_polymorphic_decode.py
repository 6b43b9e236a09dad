import copy
from abc import ABC
from collections import OrderedDict
from dataclasses import dataclass, field
from datetime import timedelta
from types import MappingProxyType
from typing import List, NewType

import pytest
import yaml

from kindhooks import (
    DecodeElementsHook,
    DecodeError,
    DecoderConfig,
    RegistrationError,
    DiscriminatorNotFoundError,
    InterfaceRegistry,
    UnknownKindError,
    UnusedFieldsError,
    decode,
    default_decoder_config,
)
from tests.helpers.plugins import (
    Config,
    ConsoleSink,
    FileSink,
    Pipeline,
    PipelineConfig,
    Plugin,
    PlugA,
    PlugB,
    Sink,
    new_plug_a,
    new_plug_b,
)

Shout = NewType("Shout", str)


@dataclass
class Loud(Plugin):
    message: Shout = Shout("")

    def init(self) -> str:
        return self.message


@dataclass
class ShapeConfig(ABC):
    name: str = ""


@dataclass
class CircleConfig(ShapeConfig):
    radius: float = 1.0


@dataclass
class Drawing:
    shapes: List[ShapeConfig] = field(default_factory=list)


def shout_hook(source_type, target_type, data):
    if target_type is Shout and isinstance(data, str):
        return data.upper()
    return data


@pytest.fixture
def registry():
    registry = InterfaceRegistry()
    registry.register_interface(Plugin, "kind1")
    registry.register(Plugin, "kindA", new_plug_a)
    registry.register(Plugin, "kindB", new_plug_b)
    registry.register(Plugin, "pipeline", Pipeline)
    registry.register(Plugin, "loud", Loud)
    registry.register_interface(Sink, "type")
    registry.register(Sink, "console", ConsoleSink)
    registry.register(Sink, "file", FileSink)
    return registry


def test_kind_selects_concrete_type_and_keeps_defaults(registry):
    cfg = decode(
        {"items": {"x": {"kind1": "kindA"}, "y": {"kind1": "kindB", "b": "set"}}},
        Config(),
        registry=registry,
    )
    assert type(cfg.items["x"]) is PlugA
    assert cfg.items["x"].a == "default a"
    assert type(cfg.items["y"]) is PlugB
    assert cfg.items["y"].b == "set"
    assert cfg.items["y"].extra == {"dflt": 42}


def test_missing_kind_is_an_error(registry):
    with pytest.raises(DiscriminatorNotFoundError) as exc_info:
        decode({"items": {"x": {"a": "no kind"}}}, Config(), registry=registry)
    assert exc_info.value.key == "kind1"
    assert "kind1" in str(exc_info.value)


def test_unknown_kind_is_an_error(registry):
    with pytest.raises(UnknownKindError, match="kindZ"):
        decode({"items": {"x": {"kind1": "kindZ"}}}, Config(), registry=registry)


def test_empty_kind_is_an_error(registry):
    with pytest.raises(DiscriminatorNotFoundError):
        decode({"items": {"x": {"kind1": ""}}}, Config(), registry=registry)


def test_non_mapping_at_interface_site(registry):
    with pytest.raises(DecodeError, match="cannot decode str into Plugin") as exc_info:
        decode({"items": {"x": "kindA"}}, Config(), registry=registry)
    assert not isinstance(exc_info.value, DiscriminatorNotFoundError)
    assert exc_info.value.path == "items"


def test_nested_interfaces(registry):
    data = yaml.safe_load(
        """
pipeline:
  kind1: pipeline
  name: main
  sinks:
    - type: console
    - type: file
      path: /var/log/app.log
      rotate: 24h
  fallback:
    type: console
    stream: stderr
"""
    )
    cfg = decode(data, PipelineConfig(), registry=registry)

    pipeline = cfg.pipeline
    assert isinstance(pipeline, Pipeline)
    assert pipeline.name == "main"
    assert pipeline.sinks == [
        ConsoleSink(),
        FileSink(path="/var/log/app.log", rotate=timedelta(hours=24)),
    ]
    assert pipeline.fallback == ConsoleSink(stream="stderr")


def test_nested_errors_propagate_unchanged(registry):
    data = {"pipeline": {"kind1": "pipeline", "sinks": [{"type": "syslog"}]}}
    with pytest.raises(UnknownKindError) as exc_info:
        decode(data, PipelineConfig(), registry=registry)
    assert exc_info.value.interface is Sink


@pytest.mark.parametrize(
    "make_mapping", [dict, OrderedDict, lambda d: MappingProxyType(dict(d))]
)
def test_mapping_representation_does_not_matter(registry, make_mapping):
    entry = make_mapping([("kind1", "kindA"), ("a", "Aa")])
    cfg = decode({"items": {"aaa": entry}}, Config(), registry=registry)
    assert cfg.items["aaa"] == PlugA(a="Aa")


def test_payload_needs_string_keys(registry):
    with pytest.raises(DecodeError, match="string keys"):
        decode({"items": {"x": {"kind1": "kindA", 1: "a"}}}, Config(), registry=registry)


def test_payload_is_strict_even_when_document_is_not(registry):
    config = default_decoder_config(registry)
    config.error_unused = False

    cfg = decode({"unknown": 1, "items": {}}, Config(), registry=registry, config=config)
    assert cfg.items == {}

    with pytest.raises(UnusedFieldsError, match="zzz"):
        decode(
            {"items": {"x": {"kind1": "kindA", "zzz": 1}}},
            Config(),
            registry=registry,
            config=config,
        )


def test_payloads_use_the_callers_hooks(registry):
    config = default_decoder_config(registry)
    config.hooks.append(shout_hook)
    cfg = decode(
        {"items": {"x": {"kind1": "loud", "message": "hello"}}},
        Config(),
        registry=registry,
        config=config,
    )
    assert cfg.items["x"].message == "HELLO"


def test_dataclass_interface(registry):
    shapes = InterfaceRegistry()
    shapes.register_interface(ShapeConfig, "shape_type")
    shapes.register(ShapeConfig, "circle", CircleConfig)

    drawing = decode(
        {"shapes": [{"shape_type": "circle", "name": "c", "radius": 2}]},
        Drawing,
        registry=shapes,
    )
    assert drawing.shapes == [CircleConfig(name="c", radius=2.0)]


def test_dataclass_interface_can_be_its_own_kind():
    shapes = InterfaceRegistry()
    shapes.register_interface(ShapeConfig, "shape_type")
    shapes.register(ShapeConfig, "plain", ShapeConfig)
    shapes.register(ShapeConfig, "circle", CircleConfig)

    drawing = decode(
        {"shapes": [{"shape_type": "plain", "name": "p"}, {"shape_type": "circle"}]},
        Drawing,
        registry=shapes,
    )
    assert drawing.shapes == [ShapeConfig(name="p"), CircleConfig()]
    assert type(drawing.shapes[0]) is ShapeConfig


def test_decode_seals_the_registry_held_by_a_hook(registry):
    config = DecoderConfig(hooks=[DecodeElementsHook(registry)])
    assert config.registry is None

    cfg = decode({"items": {"x": {"kind1": "kindA"}}}, Config(), config=config)
    assert cfg.items["x"] == PlugA(a="default a")
    assert registry.sealed
    with pytest.raises(RegistrationError, match="sealed"):
        registry.register(Plugin, "kindC", new_plug_a)


def test_decoding_is_repeatable_and_leaves_input_alone(registry):
    data = {
        "items": {
            "aaa": {"kind1": "kindA", "a": "Aa"},
            "ccc": {"kind1": "kindB", "extra": {"X1": 1}},
        }
    }
    snapshot = copy.deepcopy(data)

    first = decode(data, Config(), registry=registry)
    second = decode(data, Config(), registry=registry)

    assert first == second
    assert data == snapshot
    assert first.items["aaa"] is not second.items["aaa"]


def test_default_registry_is_used_when_none_given():
    from kindhooks import register, register_interface

    register_interface(Plugin, "kind")
    register(Plugin, "a", new_plug_a)
    cfg = decode({"items": {"x": {"kind": "a"}}}, Config())
    assert cfg.items["x"] == PlugA(a="default a")
