"""Manifest discovery: turn bundles, directories and files into Resources.

Discovery is kept apart from application so each phase first builds an
explicit, ordered list of ``Resource`` descriptors and only then hands them
to the applier one by one.
"""

from __future__ import annotations

import io
from typing import TYPE_CHECKING, Any

from ruamel.yaml import YAML
from ruamel.yaml.error import YAMLError

from clusterboot.errors import ManifestError, MissingDependencyError
from clusterboot.models import Resource

if TYPE_CHECKING:
    from collections.abc import Iterable
    from pathlib import Path

ENCRYPTED_SUFFIX = ".sops.yaml"


def _yaml() -> YAML:
    yaml = YAML(typ="safe")
    yaml.default_flow_style = False
    return yaml


def parse_documents(text: str, source: str) -> list[dict[str, Any]]:
    """Parse a multi-document YAML stream, dropping empty documents.

    Raises:
        ManifestError: If the stream is not valid YAML or holds a non-mapping document.
    """
    try:
        documents = list(_yaml().load_all(text))
    except YAMLError as e:
        raise ManifestError(source, f"Invalid YAML: {e}") from e

    parsed: list[dict[str, Any]] = []
    for index, doc in enumerate(documents):
        if doc is None:
            continue
        if not isinstance(doc, dict):
            raise ManifestError(source, f"Document {index} is not a mapping")
        parsed.append(doc)
    return parsed


def dump_document(doc: dict[str, Any]) -> str:
    stream = io.StringIO()
    _yaml().dump(doc, stream)
    return stream.getvalue()


def filter_kind(documents: Iterable[dict[str, Any]], kind: str) -> list[dict[str, Any]]:
    return [doc for doc in documents if doc.get("kind") == kind]


def _metadata(doc: dict[str, Any]) -> dict[str, Any]:
    metadata = doc.get("metadata")
    return metadata if isinstance(metadata, dict) else {}


def resource_from_document(
    doc: dict[str, Any],
    source: str,
    namespace: str | None = None,
) -> Resource:
    """Build a Resource from a parsed manifest document."""
    kind = doc.get("kind")
    name = _metadata(doc).get("name")
    if not kind or not name:
        raise ManifestError(source, "Manifest is missing kind or metadata.name")
    return Resource(
        kind=str(kind),
        name=str(name),
        namespace=namespace or _metadata(doc).get("namespace"),
        body=dump_document(doc),
    )


def resources_from_bundle(text: str, kind: str, source: str) -> list[Resource]:
    """Keep only the documents of ``kind`` from a fetched bundle.

    Raises:
        ManifestError: If the bundle holds no document of that kind.
    """
    selected = filter_kind(parse_documents(text, source), kind)
    if not selected:
        raise ManifestError(source, f"No {kind} found in the fetched resources")
    return [resource_from_document(doc, source) for doc in selected]


def discover_namespaces(apps_dir: Path) -> list[str]:
    """One namespace per top-level directory under ``apps_dir``, sorted by name.

    Raises:
        MissingDependencyError: If ``apps_dir`` does not exist.
    """
    if not apps_dir.is_dir():
        raise MissingDependencyError([str(apps_dir)], kind="file")
    return sorted(
        entry.name
        for entry in apps_dir.iterdir()
        if entry.is_dir() and not entry.name.startswith(".")
    )


def resource_name_from_path(path: Path) -> str:
    """``cluster-secrets.sops.yaml`` -> ``cluster-secrets``."""
    name = path.name
    for suffix in (ENCRYPTED_SUFFIX, ".yaml", ".yml"):
        if name.endswith(suffix):
            return name[: -len(suffix)]
    return name


def load_manifest_file(path: Path, namespace: str | None = None) -> Resource:
    """Read a plaintext manifest file; the whole file is applied as one unit."""
    text = path.read_text(encoding="utf-8")
    documents = parse_documents(text, str(path))
    if not documents:
        raise ManifestError(str(path), "File contains no manifests")
    first = documents[0]
    return Resource(
        kind=str(first.get("kind") or "ConfigMap"),
        name=str(_metadata(first).get("name") or resource_name_from_path(path)),
        namespace=namespace,
        body=text,
        source=path,
    )


def encrypted_resource(path: Path, namespace: str | None, kind: str = "Secret") -> Resource:
    """Describe a sops-encrypted manifest without reading its plaintext."""
    return Resource(
        kind=kind,
        name=resource_name_from_path(path),
        namespace=namespace,
        source=path,
        encrypted=True,
    )


def split_present(paths: Iterable[Path]) -> tuple[list[Path], list[Path]]:
    """Partition paths into (existing files, missing files), preserving order."""
    present: list[Path] = []
    missing: list[Path] = []
    for path in paths:
        (present if path.is_file() else missing).append(path)
    return present, missing
