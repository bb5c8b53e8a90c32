"""Filesystem writer for generation steps.

Applies ``WriteFile``, ``MakeDirectory``, ``MergeJSON`` and ``RemovePath``
steps below a base directory.  Blocking filesystem calls run in a worker
thread so the pipeline's event loop stays responsive.  There is no rollback:
a failure leaves whatever earlier steps produced on disk.
"""

from __future__ import annotations

import asyncio
import json
import os
import shutil
import tempfile
from pathlib import Path
from typing import Any

from ..errors import FileSystemError, ManifestParseError
from .steps import MakeDirectory, MergeJSON, RemovePath, WriteFile


class FileSystemWriter:
    """Executes filesystem steps relative to *base_dir*."""

    def __init__(self, base_dir: str | Path) -> None:
        self.base_dir = Path(base_dir)

    async def execute(self, step: WriteFile | MakeDirectory | MergeJSON | RemovePath) -> None:
        """Apply a single filesystem step.

        Raises:
            FileSystemError: If the underlying operation fails.
            ManifestParseError: If a ``MergeJSON`` target is not a JSON object.
        """
        if isinstance(step, WriteFile):
            await asyncio.to_thread(self._write_file, step)
        elif isinstance(step, MakeDirectory):
            await asyncio.to_thread(self._make_directory, step)
        elif isinstance(step, MergeJSON):
            await asyncio.to_thread(self._merge_json, step)
        elif isinstance(step, RemovePath):
            await asyncio.to_thread(self._remove_path, step)
        else:
            raise TypeError(f"FileSystemWriter cannot execute {type(step).__name__}")

    # -- Path handling -------------------------------------------------------

    def resolve(self, relative_path: str) -> Path:
        """Resolve *relative_path* below the base directory.

        Only the parent directories are resolved; a symlink in the final
        component is returned as the link itself, not its target.

        Raises:
            FileSystemError: If the path escapes the base directory.
        """
        base = self.base_dir.resolve()
        candidate = base / relative_path
        if candidate.name in ("", ".", ".."):
            target = candidate.resolve()
        else:
            target = candidate.parent.resolve() / candidate.name
        if target != base and base not in target.parents:
            raise FileSystemError(
                f"Path '{relative_path}' resolves outside {base}", path=relative_path
            )
        return target

    # -- Step implementations ------------------------------------------------

    def _write_file(self, step: WriteFile) -> None:
        target = self.resolve(step.path)
        if not target.parent.is_dir():
            raise FileSystemError(
                f"Cannot write {step.path}: parent directory does not exist",
                path=step.path,
            )
        try:
            _atomic_write(target, step.content)
        except OSError as exc:
            raise FileSystemError(f"Cannot write {step.path}: {exc}", path=step.path) from exc

    def _make_directory(self, step: MakeDirectory) -> None:
        target = self.resolve(step.path)
        if target.exists() and not target.is_dir():
            raise FileSystemError(f"A file exists at {step.path}", path=step.path)
        try:
            if step.recursive:
                target.mkdir(parents=True, exist_ok=True)
            else:
                target.mkdir()
        except FileExistsError as exc:
            raise FileSystemError(
                f"Directory already exists: {step.path}", path=step.path
            ) from exc
        except OSError as exc:
            raise FileSystemError(
                f"Cannot create directory {step.path}: {exc}", path=step.path
            ) from exc

    def _merge_json(self, step: MergeJSON) -> None:
        target = self.resolve(step.path)
        try:
            raw = target.read_text(encoding="utf-8")
        except FileNotFoundError as exc:
            raise FileSystemError(f"Manifest not found: {step.path}", path=step.path) from exc
        except OSError as exc:
            raise FileSystemError(f"Cannot read {step.path}: {exc}", path=step.path) from exc

        merged = merge_manifest(raw, step.key, step.patch, path=step.path)
        try:
            _atomic_write(target, merged)
        except OSError as exc:
            raise FileSystemError(f"Cannot write {step.path}: {exc}", path=step.path) from exc

    def _remove_path(self, step: RemovePath) -> None:
        target = self.resolve(step.path)
        try:
            if target.is_dir() and not target.is_symlink():
                if step.recursive:
                    shutil.rmtree(target)
                else:
                    target.rmdir()
            else:
                target.unlink()
        except OSError as exc:
            raise FileSystemError(f"Cannot remove {step.path}: {exc}", path=step.path) from exc


# ---------------------------------------------------------------------------
# Manifest merging
# ---------------------------------------------------------------------------

def merge_manifest(raw: str, key: str | None, patch: dict[str, Any], path: str = "") -> str:
    """Shallow-merge *patch* into the JSON document *raw*.

    With a *key* the patch is merged into that top-level object (created if
    absent); otherwise it is merged into the document root.  Sibling keys and
    their order are preserved.  Returns the new document formatted with a
    2-space indent and a trailing newline.

    Raises:
        ManifestParseError: If *raw* is not a JSON object or *key* holds a
            non-object value.
    """
    label = path or "manifest"
    try:
        document = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise ManifestParseError(f"{label} is not valid JSON: {exc}", path=path) from exc
    if not isinstance(document, dict):
        raise ManifestParseError(f"{label} does not contain a JSON object", path=path)

    if key is None:
        document.update(patch)
    else:
        existing = document.get(key)
        if existing is None:
            existing = {}
        if not isinstance(existing, dict):
            raise ManifestParseError(f"'{key}' in {label} is not a JSON object", path=path)
        document[key] = {**existing, **patch}

    return json.dumps(document, indent=2, ensure_ascii=False) + "\n"


def _atomic_write(target: Path, content: str) -> None:
    """Write *content* through a temporary sibling file and rename it into place."""
    fd, tmp_name = tempfile.mkstemp(dir=target.parent, prefix=f".{target.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            handle.write(content)
        os.chmod(tmp_name, 0o644)
        os.replace(tmp_name, target)
    except BaseException:
        if os.path.exists(tmp_name):
            os.unlink(tmp_name)
        raise
