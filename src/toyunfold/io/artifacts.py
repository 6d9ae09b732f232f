"""
Object stores for persisting trained responses between runs.

A file store holds one artifact (JSON, or YAML when the suffix asks for it)
whose ``data.objects`` maps object names to serialized payloads. Writing
recreates the file; reading a name that is not present fails loudly.
"""

from __future__ import annotations

import importlib.util
import json
import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

from toyunfold.core.artifacts import OBJECT_STORE_SCHEMA, build_artifact, build_provenance, validate_artifact
from toyunfold.core.exceptions import PersistenceError
from toyunfold.core.response import UnfoldResponse

logger = logging.getLogger(__name__)

RESPONSE_OBJECT = "response"


def _load_yaml_module():
    if importlib.util.find_spec("yaml") is None:
        return None
    import yaml

    return yaml


def _is_yaml(path: Path) -> bool:
    return path.suffix.lower() in {".yml", ".yaml"}


def write_artifact(path: Path, payload: Dict[str, Any]) -> None:
    """Write artifact data as JSON or YAML depending on extension."""
    if _is_yaml(path):
        yaml = _load_yaml_module()
        if yaml is None:
            raise ImportError("PyYAML is required to write YAML artifacts.")
        path.write_text(yaml.safe_dump(payload, sort_keys=False), encoding="utf-8")
    else:
        path.write_text(json.dumps(payload, indent=2), encoding="utf-8")


def read_artifact(path: Path) -> Dict[str, Any]:
    """Read artifact data from JSON or YAML."""
    text = path.read_text(encoding="utf-8")
    if _is_yaml(path):
        yaml = _load_yaml_module()
        if yaml is None:
            raise ImportError("PyYAML is required to read YAML artifacts.")
        return yaml.safe_load(text)
    return json.loads(text)


class ObjectStore(ABC):
    """Named-object persistence used by the unfolding workflow."""

    location: str

    @abstractmethod
    def write(self, name: str, payload: Mapping[str, Any]) -> None:
        """Replace the store contents with the single object ``name``."""

    @abstractmethod
    def read(self, name: str) -> Dict[str, Any]:
        """Return the payload stored under ``name`` or raise PersistenceError."""


class MemoryObjectStore(ObjectStore):
    """In-process store (tests and interactive use)."""

    location = "<memory>"

    def __init__(self) -> None:
        self.objects: Dict[str, Dict[str, Any]] = {}

    def write(self, name: str, payload: Mapping[str, Any]) -> None:
        # Round trip through JSON so callers cannot mutate the stored copy.
        self.objects = {name: json.loads(json.dumps(dict(payload)))}

    def read(self, name: str) -> Dict[str, Any]:
        if name not in self.objects:
            raise PersistenceError(f"could not read '{name}' object from {self.location}")
        return json.loads(json.dumps(self.objects[name]))


class FileObjectStore(ObjectStore):
    """Artifact file on disk, always recreated on write."""

    def __init__(self, path: Path, run_parameters: Optional[Dict[str, Any]] = None) -> None:
        self.path = Path(path)
        self.location = f"file {self.path}"
        self.run_parameters = run_parameters

    def write(self, name: str, payload: Mapping[str, Any]) -> None:
        data = {
            "objects": {name: dict(payload)},
            "provenance": build_provenance(
                units={"values": "events", "variances": "events^2", "range": "x"},
                definitions={name: "trained unfolding response (measured x true)"},
                run_parameters=self.run_parameters,
            ),
        }
        artifact = build_artifact(
            OBJECT_STORE_SCHEMA,
            data,
            units={"values": "events", "variances": "events^2"},
            normalization={"basis": "raw", "description": "unweighted toy event counts"},
        )
        self.path.parent.mkdir(parents=True, exist_ok=True)
        write_artifact(self.path, artifact)
        logger.info("Wrote '%s' to %s", name, self.path)

    def read(self, name: str) -> Dict[str, Any]:
        message = f"could not read '{name}' object from {self.location}"
        if not self.path.exists():
            raise PersistenceError(f"{message}: file does not exist")
        try:
            artifact = read_artifact(self.path)
            validate_artifact(artifact, OBJECT_STORE_SCHEMA)
        except (OSError, ValueError, TypeError) as exc:
            raise PersistenceError(f"{message}: {exc}") from exc
        objects = artifact["data"]["objects"]
        if name not in objects:
            raise PersistenceError(message)
        return objects[name]


def write_response(store: ObjectStore, response: UnfoldResponse, name: str = RESPONSE_OBJECT) -> None:
    store.write(name, response.to_dict())


def read_response(store: ObjectStore, name: str = RESPONSE_OBJECT) -> UnfoldResponse:
    payload = store.read(name)
    try:
        return UnfoldResponse.from_dict(payload)
    except (KeyError, ValueError, TypeError) as exc:
        raise PersistenceError(f"could not read '{name}' object from {store.location}: {exc}") from exc
