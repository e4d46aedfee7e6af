"""
livescene/document/loader.py

Loading documents from disk and handing out typed handles to them.

- DocumentLoader: file with a recognized extension -> SceneDocument
- DocumentStore: documents addressed by handle key (files and in-memory documents)
- FileReferenceLoader: resolve(type_tag, path) -> Handle, loading on first reference
"""

import logging
from itertools import count
from pathlib import Path
from typing import Dict, Generic, Iterator, Optional, TypeVar, Union

from pydantic import BaseModel, ConfigDict

from livescene.base.config import DocumentConfig
from livescene.document.model import SceneDocument
from livescene.document.parser import parse_document
from livescene.errors import DocumentParseError, UnknownType

logger = logging.getLogger(__name__)

T = TypeVar("T")


class Handle(BaseModel, Generic[T]):
    """Opaque reference to a loaded resource; `Handle[SceneDocument]` is its own type."""
    model_config = ConfigDict(frozen=True)

    key: str


DocumentHandle = Handle[SceneDocument]


class DocumentLoader:
    """Reads bytes, decodes them as text and parses the document notation."""

    def __init__(self, config: Optional[DocumentConfig] = None):
        self.config = config or DocumentConfig()

    def accepts(self, path: Union[str, Path]) -> bool:
        return Path(path).suffix.lstrip(".").lower() in self.config.extensions

    def load(self, path: Union[str, Path]) -> SceneDocument:
        path = Path(path)
        if not self.accepts(path):
            raise DocumentParseError(
                f"{path} is not a scene document (extensions: {', '.join(self.config.extensions)})"
            )
        try:
            data = path.read_bytes()
        except OSError as e:
            raise DocumentParseError(f"Cannot read {path}: {e}") from e
        try:
            markup = data.decode(self.config.encoding)
        except UnicodeDecodeError as e:
            raise DocumentParseError(f"{path} is not valid {self.config.encoding}: {e}") from e
        return parse_document(markup, source=str(path))


class DocumentStore:
    """Documents by handle key; files are keyed by their resolved path."""

    def __init__(self, loader: Optional[DocumentLoader] = None):
        self.loader = loader or DocumentLoader()
        self._documents: Dict[str, SceneDocument] = {}
        self._memory_ids = count(1)

    def add(self, document: SceneDocument) -> DocumentHandle:
        key = f"memory://{next(self._memory_ids)}"
        self._documents[key] = document
        return DocumentHandle(key=key)

    def load(self, path: Union[str, Path]) -> DocumentHandle:
        key = str(Path(path).resolve())
        if key not in self._documents:
            self._documents[key] = self.loader.load(key)
            logger.info(f"[DocumentStore] Loaded {key}")
        return DocumentHandle(key=key)

    def get(self, handle: Union[DocumentHandle, str]) -> SceneDocument:
        key = handle if isinstance(handle, str) else handle.key
        try:
            return self._documents[key]
        except KeyError:
            raise DocumentParseError(f"No document loaded for handle {key}") from None

    def __contains__(self, key: str) -> bool:
        return key in self._documents

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._documents))

    def clear(self) -> None:
        self._documents.clear()


class FileReferenceLoader:
    """Resolves resource references written in documents to handles."""

    def __init__(self, documents: DocumentStore, root_dir: Optional[Path] = None):
        self.documents = documents
        self.root_dir = root_dir or Path.cwd()

    def resolve(self, type_tag: str, path: str) -> Handle:
        if type_tag != "SceneDocument":
            raise UnknownType(f"Handle<{type_tag}>")
        target = Path(path)
        if not target.is_absolute():
            target = self.root_dir / target
        return self.documents.load(target)
