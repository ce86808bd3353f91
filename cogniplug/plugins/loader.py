"""Plugin loader for discovering and loading cogniplug plugins.

Scans directories for Python modules and lets each one register its plugins
through a module-level ``register_plugins(registry)`` hook.
"""

from __future__ import annotations

import importlib
import importlib.util
import logging
import sys
from pathlib import Path
from typing import Any

from cogniplug.plugins.registry import PluginRegistry

logger = logging.getLogger(__name__)

REGISTER_HOOK = "register_plugins"


class PluginLoader:
    """Discover and load plugins from directories into a registry."""

    def __init__(self, registry: PluginRegistry):
        self._registry = registry

    def load_all(self, plugin_dirs: list[str] | None = None) -> dict[str, Any]:
        """Load all plugins from specified directories.

        Args:
            plugin_dirs: List of directory paths to scan. If None, uses default
                        'plugins/' directory at project root.

        Returns:
            Dict with loaded plugin and file counts plus collected errors
        """
        if plugin_dirs is None:
            plugin_dirs = ["plugins"]

        stats: dict[str, Any] = {"plugins": 0, "files": 0, "errors": []}

        for dir_path in plugin_dirs:
            path = Path(dir_path)
            if not path.exists():
                logger.warning(f"Plugin directory not found: {dir_path}")
                continue

            if not path.is_dir():
                logger.warning(f"Plugin path is not a directory: {dir_path}")
                continue

            loaded = self.load_from_directory(str(path))
            stats["plugins"] += loaded["plugins"]
            stats["files"] += loaded["files"]
            stats["errors"].extend(loaded["errors"])

        logger.info(f"Loaded {stats['plugins']} plugins from {stats['files']} files")
        return stats

    def load_from_directory(self, directory: str) -> dict[str, Any]:
        """Load all Python files from a directory.

        A failing file is logged and recorded in ``errors``; the rest still load.
        """
        dir_path = Path(directory)
        stats: dict[str, Any] = {"plugins": 0, "files": 0, "errors": []}

        # Skip __init__.py and files starting with _
        py_files = sorted(
            f for f in dir_path.glob("*.py") if f.name != "__init__.py" and not f.name.startswith("_")
        )

        logger.debug(f"Found {len(py_files)} plugin files in {directory}")

        for py_file in py_files:
            before = len(self._registry)
            try:
                self.load_plugin_file(str(py_file))
            except Exception as e:
                error_msg = f"Failed to load {py_file.name}: {e}"
                logger.error(error_msg)
                stats["errors"].append(error_msg)
                continue

            stats["files"] += 1
            stats["plugins"] += len(self._registry) - before
            logger.debug(f"Loaded plugin file: {py_file.name}")

        return stats

    def load_plugin_file(self, file_path: str) -> None:
        """Execute a single plugin file and call its registration hook.

        Raises:
            FileNotFoundError: If file does not exist
            ValueError: If the path is not a Python file
            ImportError: If file cannot be loaded or defines no hook
        """
        path = Path(file_path)
        if not path.exists():
            raise FileNotFoundError(f"Plugin file not found: {file_path}")

        if not path.is_file() or path.suffix != ".py":
            raise ValueError(f"Not a Python file: {file_path}")

        module_name = f"cogniplug_plugin_{path.stem}"

        spec = importlib.util.spec_from_file_location(module_name, path)
        if spec is None or spec.loader is None:
            raise ImportError(f"Cannot load spec for {file_path}")

        module = importlib.util.module_from_spec(spec)
        sys.modules[module_name] = module
        spec.loader.exec_module(module)
        logger.debug(f"Executed plugin module: {module_name}")

        self._call_hook(module, file_path)

    def load_plugin(self, module_name: str) -> None:
        """Load a plugin by module name (for installed packages).

        Raises:
            ImportError: If module cannot be imported or defines no hook
        """
        module = importlib.import_module(module_name)
        logger.debug(f"Loaded plugin module: {module_name}")
        self._call_hook(module, module_name)

    def _call_hook(self, module: Any, origin: str) -> None:
        hook = getattr(module, REGISTER_HOOK, None)
        if not callable(hook):
            raise ImportError(f"{origin} does not define {REGISTER_HOOK}(registry)")
        hook(self._registry)
