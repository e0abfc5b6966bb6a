"""Component compilation.

Turns a kida component file into a ``CompiledComponent``: the compiled
``Template`` plus an on-disk client module that full-page hydration
fetches by bundle key. All components share one kida ``Environment``;
the template runtime is never duplicated per component.
"""

from __future__ import annotations

import hashlib
import json
import logging
import os
import shutil
import tempfile
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from kida import Environment

from skerry.errors import CompilationError, ComponentResolutionError

logger = logging.getLogger("skerry.ssr")


@dataclass(frozen=True, slots=True)
class BundleKey:
    """Identity of one compiled artifact.

    A touched file gets a new ``mtime_ms`` and therefore a new key; no
    explicit invalidation is needed for edit/reload cycles.
    """

    path: str
    mtime_ms: int
    environment: str

    def __str__(self) -> str:
        return f"{self.path}:{self.mtime_ms}:{self.environment}"

    def digest(self) -> str:
        """Stable public id used in ``bundleKey`` and bundle URLs."""
        return hashlib.sha1(str(self).encode("utf-8"), usedforsecurity=False).hexdigest()


@dataclass(frozen=True, slots=True)
class CompiledComponent:
    path: str
    bundle_key: str
    template: Any
    source_hash: str
    artifact_path: Path | None = None

    def render(self, context: dict[str, Any]) -> str:
        return self.template.render(context)


def create_environment() -> Environment:
    """The shared environment every component compiles against."""
    return Environment(autoescape=True)


class KidaCompiler:
    """Compile component sources and manage their on-disk artifacts.

    ``artifact_dir=None`` uses a private temporary directory that
    ``close()`` removes.
    """

    def __init__(
        self,
        *,
        artifact_dir: str | Path | None = None,
        env: Environment | None = None,
    ) -> None:
        self._env = env if env is not None else create_environment()
        if artifact_dir is None:
            self._artifact_dir = Path(tempfile.mkdtemp(prefix="skerry-ssr-"))
            self._owns_dir = True
        else:
            self._artifact_dir = Path(artifact_dir)
            self._artifact_dir.mkdir(parents=True, exist_ok=True)
            self._owns_dir = False

    @property
    def env(self) -> Environment:
        return self._env

    @property
    def artifact_dir(self) -> Path:
        return self._artifact_dir

    def key_for(self, path: str, environment: str) -> BundleKey:
        """Stat *path* and build its current bundle key."""
        resolved = os.path.abspath(path)
        try:
            mtime_ns = os.stat(resolved).st_mtime_ns
        except OSError:
            msg = f"Component file not found: {path}"
            raise ComponentResolutionError(msg, component=path) from None
        return BundleKey(resolved, mtime_ns // 1_000_000, environment)

    def compile(self, key: BundleKey) -> CompiledComponent:
        try:
            source = Path(key.path).read_text(encoding="utf-8")
        except OSError as exc:
            msg = f"Component file not found: {key.path}"
            raise ComponentResolutionError(msg, component=key.path) from exc

        try:
            template = self._env.from_string(source)
        except Exception as exc:
            msg = f"{type(exc).__name__}: {exc}"
            raise CompilationError(msg, component=key.path) from exc

        bundle_key = key.digest()
        artifact_path = self._write_artifact(key, bundle_key, source)
        logger.debug("Compiled %s (%s)", key.path, bundle_key[:12])
        return CompiledComponent(
            path=key.path,
            bundle_key=bundle_key,
            template=template,
            source_hash=hashlib.sha256(source.encode("utf-8")).hexdigest(),
            artifact_path=artifact_path,
        )

    def release(self, component: CompiledComponent) -> None:
        """Delete the on-disk artifact of an evicted component."""
        if component.artifact_path is not None:
            component.artifact_path.unlink(missing_ok=True)

    def close(self) -> None:
        if self._owns_dir:
            shutil.rmtree(self._artifact_dir, ignore_errors=True)

    def _write_artifact(self, key: BundleKey, bundle_key: str, source: str) -> Path:
        """Write the client module served at ``/full-page-bundles/<key>``.

        Every compile gets its own file, so releasing a duplicate or retired
        artifact never removes the one a newer entry for the same key serves.
        """
        module = (
            f"export const bundleKey = {json.dumps(bundle_key)};\n"
            f"export const component = {json.dumps(Path(key.path).stem)};\n"
            f"export const template = {json.dumps(source)};\n"
            "export default template;\n"
        )
        artifact_path = self._artifact_dir / f"{bundle_key}-{uuid.uuid4().hex[:8]}.mjs"
        artifact_path.write_text(module, encoding="utf-8")
        return artifact_path
