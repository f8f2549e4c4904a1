"""
Action Code Loader

Persists the code artifact of an /init call and turns its entry point into
exactly one ActionHandler.

Design principles:
- Every load gets a fresh mkdtemp directory that is never reused or cleaned up
- The artifact is mounted as a synthetic package with a unique name, so user
  modules live outside the host's import namespace and sys.path is untouched
- Errors are raised as ActionLoadError subclasses with the cause attached
"""

import importlib
import importlib.machinery
import importlib.util
import inspect
import logging
import os
import sys
import tempfile
import uuid
import zipfile
from pathlib import Path
from typing import Any, Optional, Tuple

from actionproxy.runtime.core.exceptions import (
    ArtifactMissingError,
    ArtifactPersistError,
    EmptyEntryPointError,
    InstantiationError,
)
from actionproxy.runtime.core.handler import ActionHandler, CallableHandler
from actionproxy.runtime.models.action import ActionPackage

logger = logging.getLogger("runtime.loader")

ARTIFACT_PREFIX = "useraction"
ARCHIVE_NAME = "useraction.zip"
SOURCE_NAME = "__main__.py"
ACTION_PACKAGE_PREFIX = "_action_"
DEFAULT_MODULE = "__main__"


def parse_entry_point(entry_point: str) -> Tuple[str, str]:
    """
    Split an entry point into (module, attribute).

    Accepts "module.path:attribute" or a bare "attribute", which resolves
    against the artifact's `__main__` module.

    Raises:
        EmptyEntryPointError: nothing to resolve
    """
    entry_point = (entry_point or "").strip()
    if not entry_point:
        raise EmptyEntryPointError()

    module_name, sep, attribute = entry_point.rpartition(":")
    if not sep:
        module_name = DEFAULT_MODULE
    module_name = module_name.strip() or DEFAULT_MODULE
    attribute = attribute.strip()
    if not attribute:
        raise EmptyEntryPointError()
    return module_name, attribute


class ActionLoader:
    def __init__(self, work_dir: Optional[str] = None):
        """
        Args:
            work_dir: parent directory for artifact directories (system temp dir if None)
        """
        self.work_dir = work_dir

    def load(self, package: ActionPackage) -> ActionHandler:
        """
        Persist the package and instantiate its entry point.

        Raises:
            EmptyEntryPointError: no entry point given
            ArtifactPersistError: the code could not be written or unpacked
            ArtifactMissingError: persistence did not leave a readable artifact
            InstantiationError: importing, resolving or instantiating failed
        """
        module_name, attribute = parse_entry_point(package.entry_point)
        action_dir = self.persist(package)
        handler = self.instantiate(action_dir, module_name, attribute)
        logger.info(
            f"Loaded action entry point {module_name}:{attribute}",
            extra={"action_dir": str(action_dir)},
        )
        return handler

    def persist(self, package: ActionPackage) -> Path:
        """Write the artifact into a fresh directory and return the importable root."""
        try:
            root = Path(tempfile.mkdtemp(prefix=ARTIFACT_PREFIX, dir=self.work_dir))
            action_dir = root / "action"
            action_dir.mkdir()
            if package.is_archive:
                artifact = root / ARCHIVE_NAME
                artifact.write_bytes(package.code)
            else:
                artifact = action_dir / SOURCE_NAME
                artifact.write_bytes(package.code)
        except OSError as e:
            raise ArtifactPersistError(e) from e

        if not artifact.is_file() or not os.access(artifact, os.R_OK):
            raise ArtifactMissingError(str(artifact.absolute()))

        if package.is_archive:
            try:
                _extract_archive(artifact, action_dir)
            except (OSError, ValueError, zipfile.BadZipFile) as e:
                raise ArtifactPersistError(e) from e

        importlib.invalidate_caches()
        return action_dir

    def instantiate(self, action_dir: Path, module_name: str, attribute: str) -> ActionHandler:
        entry_point = f"{module_name}:{attribute}"
        package_name = f"{ACTION_PACKAGE_PREFIX}{uuid.uuid4().hex}"
        try:
            _mount_package(package_name, action_dir)
            module = importlib.import_module(f"{package_name}.{module_name}")
            target = _resolve_attribute(module, attribute)
            if inspect.isclass(target):
                target = target()
            return CallableHandler(target, name=entry_point)
        except (Exception, SystemExit) as e:
            logger.error(f"Failed to instantiate entry point {entry_point}", exc_info=True)
            raise InstantiationError(entry_point, e) from e


def _extract_archive(archive: Path, destination: Path) -> None:
    root = destination.resolve()
    with zipfile.ZipFile(archive) as zf:
        for member in zf.namelist():
            target = (root / member).resolve()
            if target != root and root not in target.parents:
                raise ValueError(f"Archive entry escapes the action directory: {member}")
        zf.extractall(root)


def _mount_package(package_name: str, action_dir: Path) -> None:
    spec = importlib.machinery.ModuleSpec(package_name, None, is_package=True)
    spec.submodule_search_locations = [str(action_dir)]
    package = importlib.util.module_from_spec(spec)
    sys.modules[package_name] = package


def _resolve_attribute(module: Any, attribute: str) -> Any:
    target = module
    for part in attribute.split("."):
        target = getattr(target, part)
    return target
