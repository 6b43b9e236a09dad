"""Decode configuration documents straight from YAML or JSON."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import IO, Any, Optional, Union

import yaml

from kindhooks.decoding import DecoderConfig, decode
from kindhooks.registry import InterfaceRegistry

logger = logging.getLogger(__name__)


def decode_yaml(
    source: Union[str, IO[str]],
    target: Any,
    registry: Optional[InterfaceRegistry] = None,
    config: Optional[DecoderConfig] = None,
) -> Any:
    """Parse ``source`` with ``yaml.safe_load`` and decode it into ``target``."""
    tree = yaml.safe_load(source)
    if tree is None:
        tree = {}
    return decode(tree, target, registry=registry, config=config)


def decode_file(
    path: Union[str, Path],
    target: Any,
    registry: Optional[InterfaceRegistry] = None,
    config: Optional[DecoderConfig] = None,
) -> Any:
    """Decode the document at ``path``; ``.json`` files are read as JSON."""
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"No configuration file at {path}")
    logger.debug("Decoding configuration file %s", path)
    text = path.read_text()
    if path.suffix == ".json":
        return decode(json.loads(text), target, registry=registry, config=config)
    return decode_yaml(text, target, registry=registry, config=config)
