"""Artifact envelope: schema, metadata, provenance and checksum validation."""

from __future__ import annotations

import hashlib
import json
import platform
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Mapping, Optional, Tuple

import numpy as np

from toyunfold import __version__

SCHEMA_VERSION = "0.1.0"

METADATA_KEYS = ("schema_name", "schema_version", "units", "normalization", "library_versions", "checksums")


@dataclass(frozen=True)
class ArtifactSchema:
    """Name, version and mandatory keys of one artifact kind."""

    name: str
    version: str
    data_fields: Tuple[str, ...]
    units: Tuple[str, ...]
    normalization: Tuple[str, ...] = ("basis", "description")


OBJECT_STORE_SCHEMA = ArtifactSchema(
    name="toyunfold.object_store",
    version=SCHEMA_VERSION,
    data_fields=("objects",),
    units=("values", "variances"),
)


def _missing(container: Mapping[str, Any], keys, context: str) -> None:
    absent = [key for key in keys if key not in container]
    if absent:
        raise ValueError(f"artifact {context} lacks {', '.join(absent)}")


def compute_sha256(payload: Any) -> str:
    """Checksum of the canonical (sorted, compact) JSON form of ``payload``."""
    canonical = json.dumps(payload, sort_keys=True, separators=(",", ":"), ensure_ascii=False)
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()


def library_versions(extra: Optional[Mapping[str, str]] = None) -> Dict[str, str]:
    versions = {
        "toyunfold": __version__,
        "numpy": np.__version__,
        "python": platform.python_version(),
    }
    if extra:
        versions.update(extra)
    return versions


def build_provenance(
    *,
    units: Dict[str, str],
    definitions: Optional[Dict[str, str]] = None,
    run_parameters: Optional[Dict[str, Any]] = None,
    notes: Optional[str] = None,
) -> Dict[str, Any]:
    """Record of how a stored object was produced."""
    provenance: Dict[str, Any] = {
        "created_at": datetime.now(timezone.utc).isoformat(),
        "versions": library_versions(),
        "units": units,
    }
    if definitions:
        provenance["definitions"] = definitions
    if run_parameters:
        provenance["run_parameters"] = run_parameters
    if notes:
        provenance["notes"] = notes
    return provenance


def build_artifact(
    schema: ArtifactSchema,
    payload: Any,
    units: Mapping[str, str],
    normalization: Mapping[str, str],
) -> Dict[str, Any]:
    """Wrap ``payload`` in a ``{"metadata", "data"}`` envelope."""
    metadata = {
        "schema_name": schema.name,
        "schema_version": schema.version,
        "created_at": datetime.now(timezone.utc).isoformat(),
        "units": dict(units),
        "normalization": dict(normalization),
        "library_versions": library_versions(),
        "checksums": {"payload_sha256": compute_sha256(payload)},
    }
    return {"metadata": metadata, "data": payload}


def validate_artifact(artifact: Mapping[str, Any], schema: ArtifactSchema) -> None:
    """
    Raise ValueError unless ``artifact`` is a well-formed envelope of ``schema``.

    The payload checksum is recomputed, so any edit to ``data`` after writing
    is detected.
    """
    if not isinstance(artifact, Mapping):
        raise ValueError("artifact is not a mapping")
    _missing(artifact, ("metadata", "data"), "envelope")
    metadata, data = artifact["metadata"], artifact["data"]
    _missing(metadata, METADATA_KEYS, "metadata")

    found = (metadata["schema_name"], metadata["schema_version"])
    if found != (schema.name, schema.version):
        raise ValueError(f"expected schema {schema.name} {schema.version}, found {found[0]} {found[1]}")
    _missing(metadata["units"], schema.units, "units")
    _missing(metadata["normalization"], schema.normalization, "normalization")
    _missing(data, schema.data_fields, "data")

    if metadata["checksums"].get("payload_sha256") != compute_sha256(data):
        raise ValueError("payload checksum mismatch")
