"""
Blocks Kernel: Assembly Layer

Sits between the pure functions (reducer, resolver, renderer) and the outside
world (a document store, template files). Coordinates the lifecycle of one
block definition.

Operations: create, load, save, delete, apply, render

This is where IO happens. Every save writes the whole definition; two editors
saving the same block are last-write-wins at document granularity.
"""

from __future__ import annotations

import copy
import json
import logging
import re
from pathlib import Path
from typing import Any

from blockengine.kernel.document import MalformedDefinition, empty_definition, validate_document
from blockengine.kernel.reducer import reduce
from blockengine.kernel.renderer import TemplateLoader, render_block
from blockengine.kernel.types import MutationResult, Operation

logger = logging.getLogger(__name__)

_BLOCK_NAME = re.compile(r"^[a-z0-9][a-z0-9_-]{0,63}$")


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class BlockNotFound(Exception):
    """Block does not exist in storage."""

    pass


class BlockAlreadyExists(Exception):
    """A block with this name is already stored."""

    pass


# ---------------------------------------------------------------------------
# Storage protocol
# ---------------------------------------------------------------------------


class BlockStorage:
    """
    Abstract storage interface.
    Stores whole documents keyed by block name.
    """

    def get(self, name: str) -> dict[str, Any] | None:
        """Fetch a stored document. Returns None if not found."""
        raise NotImplementedError

    def put(self, name: str, document: dict[str, Any]) -> None:
        """Write a whole document, replacing any previous one."""
        raise NotImplementedError

    def delete(self, name: str) -> None:
        raise NotImplementedError

    def names(self) -> list[str]:
        raise NotImplementedError


class MemoryStorage(BlockStorage):
    """In-memory storage for testing."""

    def __init__(self) -> None:
        self.documents: dict[str, dict[str, Any]] = {}

    def get(self, name: str) -> dict[str, Any] | None:
        document = self.documents.get(name)
        return copy.deepcopy(document) if document is not None else None

    def put(self, name: str, document: dict[str, Any]) -> None:
        self.documents[name] = copy.deepcopy(document)

    def delete(self, name: str) -> None:
        self.documents.pop(name, None)

    def names(self) -> list[str]:
        return sorted(self.documents)


class JsonDirectoryStorage(BlockStorage):
    """One <name>.json file per block in a directory."""

    def __init__(self, root: str | Path) -> None:
        self.root = Path(root)
        self.root.mkdir(parents=True, exist_ok=True)

    def _path(self, name: str) -> Path:
        return self.root / f"{name}.json"

    def get(self, name: str) -> dict[str, Any] | None:
        path = self._path(name)
        if not path.is_file():
            return None
        try:
            return json.loads(path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as e:
            raise MalformedDefinition(f"{path.name} is not valid JSON: {e}") from e

    def put(self, name: str, document: dict[str, Any]) -> None:
        path = self._path(name)
        tmp = path.with_suffix(".json.tmp")
        tmp.write_text(json.dumps(document, indent=2, sort_keys=True), encoding="utf-8")
        tmp.replace(path)

    def delete(self, name: str) -> None:
        self._path(name).unlink(missing_ok=True)

    def names(self) -> list[str]:
        return sorted(p.stem for p in self.root.glob("*.json"))


# ---------------------------------------------------------------------------
# Assembly
# ---------------------------------------------------------------------------


class BlockAssembly:
    """Loads, edits, saves, and renders block definitions."""

    def __init__(self, storage: BlockStorage, loader: TemplateLoader | None = None) -> None:
        self.storage = storage
        self.loader = loader or TemplateLoader()

    def create(self, name: str, title: str = "") -> dict[str, Any]:
        """Store an empty block. Raises BlockAlreadyExists."""
        if not _BLOCK_NAME.match(name):
            raise MalformedDefinition(f"invalid block name {name!r}")
        if self.storage.get(name) is not None:
            raise BlockAlreadyExists(name)
        definition = empty_definition(name, title)
        self.storage.put(name, definition)
        logger.info("assembly: created block %s", name)
        return definition

    def load(self, name: str) -> dict[str, Any]:
        """Fetch and validate a stored block. Raises BlockNotFound, MalformedDefinition."""
        data = self.storage.get(name)
        if data is None:
            raise BlockNotFound(name)
        try:
            return validate_document(data)
        except MalformedDefinition:
            logger.error("assembly: stored block %s is malformed", name)
            raise

    def save(self, definition: dict[str, Any]) -> dict[str, Any]:
        """Validate and store a whole definition, replacing the previous one."""
        document = validate_document(definition)
        self.storage.put(document["name"], document)
        logger.info("assembly: saved block %s (%d fields)", document["name"], len(document["fields"]))
        return document

    def delete(self, name: str) -> None:
        if self.storage.get(name) is None:
            raise BlockNotFound(name)
        self.storage.delete(name)
        logger.info("assembly: deleted block %s", name)

    def names(self) -> list[str]:
        return self.storage.names()

    def apply(self, name: str, operation: Operation) -> MutationResult:
        """
        Reduce one operation against the stored block.
        An applied result is validated and persisted as a whole; a rejected one,
        or one whose result would not load again, changes nothing.
        """
        definition = self.load(name)
        result = reduce(definition, operation)
        if not result.applied:
            logger.info("assembly: %s rejected on %s: %s", operation.type, name, result.error)
            return result
        try:
            result.definition = validate_document(result.definition)
        except MalformedDefinition as e:
            logger.warning("assembly: %s on %s produced an invalid block: %s", operation.type, name, e)
            return MutationResult(definition=definition, applied=False, error=f"INVALID_OPERATION: {e}")
        self.storage.put(name, result.definition)
        for warning in result.warnings:
            logger.info("assembly: %s on %s: %s", operation.type, name, warning.message)
        return result

    def render(
        self,
        name: str,
        attributes: dict[str, Any] | None = None,
        values: dict[str, Any] | None = None,
        preview: bool = False,
    ) -> str:
        definition = self.load(name)
        return render_block(definition, attributes, values, loader=self.loader, preview=preview)
