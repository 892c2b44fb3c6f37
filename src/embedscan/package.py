"""Package- and module-level scanning on top of the single-file scanner.

Each file still gets its own :class:`~embedscan.scanner.Scanner`; this
module only finds the files, works out each file's import path from
``go.mod``, and merges the per-file results.
"""

from __future__ import annotations

import fnmatch
import logging
import os
import re
import subprocess
from dataclasses import dataclass, field
from pathlib import Path as FsPath

from embedscan.errors import ModuleError, ScanError
from embedscan.paths import Path
from embedscan.scanner import DEFAULT_NAMESPACE, ScanResult, Scanner

log = logging.getLogger(__name__)

GO_MOD = "go.mod"

# Directories the go tool ignores, plus common vendored trees
SKIP_DIRS = frozenset({
    "testdata",
    "vendor",
    "node_modules",
})

MAX_FILE_SIZE = 1_000_000  # 1MB

_MODULE_RE = re.compile(r'^\s*module\s+("?)([^"\s]+)\1\s*(?://.*)?$')


@dataclass
class PackageResult:
    """Merged result of scanning several files."""

    root: str
    paths: list[Path] = field(default_factory=list)
    files: list[ScanResult] = field(default_factory=list)

    @property
    def errors(self) -> list[ScanError]:
        return [e for r in self.files for e in r.errors]

    @property
    def ok(self) -> bool:
        return all(r.ok for r in self.files)

    def to_dict(self) -> dict:
        return {
            "root": self.root,
            "paths": [str(p) for p in self.paths],
            "files": [r.to_dict() for r in self.files],
        }


# ---------------------------------------------------------------------------
# go.mod
# ---------------------------------------------------------------------------


def find_module_root(start: str | FsPath = ".") -> FsPath | None:
    """Walk up from *start* looking for a go.mod file.

    Returns the directory containing it, or None.
    """
    current = FsPath(start).resolve()
    if current.is_file():
        current = current.parent
    while True:
        if (current / GO_MOD).is_file():
            return current
        if current == current.parent:
            return None
        current = current.parent


def read_module_path(go_mod: str | FsPath) -> str:
    """Return the module path declared in *go_mod*."""
    go_mod = FsPath(go_mod)
    try:
        text = go_mod.read_text(encoding="utf-8")
    except OSError as e:
        raise ModuleError(f"cannot read {go_mod}: {e}") from e
    for line in text.splitlines():
        m = _MODULE_RE.match(line)
        if m:
            return m.group(2)
    raise ModuleError(f"{go_mod}: no module directive")


def package_import_path(directory: str | FsPath, module_root: str | FsPath, module_path: str) -> str:
    """Import path of the package in *directory* inside *module_root*."""
    rel = os.path.relpath(FsPath(directory).resolve(), FsPath(module_root).resolve())
    rel = rel.replace("\\", "/")
    if rel == ".":
        return module_path
    if rel.startswith(".."):
        raise ModuleError(f"{directory} is outside module {module_path}")
    return f"{module_path}/{rel}"


# ---------------------------------------------------------------------------
# File discovery
# ---------------------------------------------------------------------------


def _skip_dir(name: str) -> bool:
    return name in SKIP_DIRS or name.startswith((".", "_"))


def _matches(rel_path: str, patterns) -> bool:
    for pattern in patterns:
        if fnmatch.fnmatch(rel_path, pattern) or FsPath(rel_path).match(pattern):
            return True
    return False


def _git_ls_files(root: FsPath) -> list[str] | None:
    """Try to list files using git ls-files. Returns None if git unavailable."""
    try:
        result = subprocess.run(
            ["git", "ls-files", "--cached", "--others", "--exclude-standard", "--", "*.go"],
            cwd=str(root),
            capture_output=True,
            text=True,
            timeout=30,
        )
        if result.returncode != 0:
            return None
        return [p.strip() for p in result.stdout.splitlines() if p.strip()]
    except (FileNotFoundError, subprocess.TimeoutExpired):
        return None


def _walk_files(root: FsPath, recursive: bool) -> list[str]:
    """Fallback file discovery using os.walk."""
    result = []
    for dirpath, dirnames, filenames in os.walk(root):
        dirnames[:] = [d for d in dirnames if recursive and not _skip_dir(d)]
        for fname in filenames:
            rel = os.path.relpath(os.path.join(dirpath, fname), root)
            result.append(rel.replace("\\", "/"))
    return result


def discover_go_files(
    root: str | FsPath,
    *,
    recursive: bool = False,
    include_tests: bool = False,
    exclude=(),
) -> list[str]:
    """List Go source files under *root* as sorted, slash-separated relative paths.

    Without *recursive* only files directly in *root* are returned.  Hidden,
    ``_``-prefixed, ``testdata`` and vendored directories are skipped, as
    are ``_test.go`` files unless *include_tests* is set and any path
    matching an *exclude* glob.
    """
    root = FsPath(root).resolve()
    raw = _git_ls_files(root)
    if raw is None:
        raw = _walk_files(root, recursive)

    kept = []
    for rel_path in raw:
        rel_path = rel_path.replace("\\", "/")
        parts = rel_path.split("/")
        name = parts[-1]
        if not recursive and len(parts) > 1:
            continue
        if any(_skip_dir(d) for d in parts[:-1]):
            continue
        if not name.endswith(".go") or name.startswith((".", "_")):
            continue
        if name.endswith("_test.go") and not include_tests:
            continue
        if _matches(rel_path, exclude):
            log.debug("excluded %s", rel_path)
            continue
        try:
            if (root / rel_path).stat().st_size > MAX_FILE_SIZE:
                log.debug("skipping oversized %s", rel_path)
                continue
        except OSError:
            continue
        kept.append(rel_path)
    kept.sort()
    return kept


# ---------------------------------------------------------------------------
# Scanning
# ---------------------------------------------------------------------------


def scan_package(
    directory: str | FsPath = ".",
    *,
    package: str | None = None,
    namespace: str = DEFAULT_NAMESPACE,
    include_tests: bool = False,
    exclude=(),
    recursive: bool = False,
    module: str | None = None,
) -> PackageResult:
    """Scan the Go files of one package directory (or a whole tree).

    Every file is scanned with the import path of its own directory, taken
    from *package* when given (non-recursive scans only) or derived from
    the enclosing go.mod.  *module* overrides the go.mod module path.  A
    file that fails to parse aborts the scan with ParseError.
    """
    directory = FsPath(directory).resolve()
    module_root = module_path = None
    derive = package is None or recursive
    if derive:
        module_root = find_module_root(directory)
        if module_root is None:
            if module is None:
                raise ModuleError(f"no {GO_MOD} found in {directory} or any parent")
            module_root = directory
        module_path = module or read_module_path(module_root / GO_MOD)

    files = discover_go_files(
        directory,
        recursive=recursive,
        include_tests=include_tests,
        exclude=exclude,
    )
    log.debug("%s: %d file(s) to scan", directory, len(files))

    result = PackageResult(root=str(directory))
    found: set[Path] = set()
    for rel_path in files:
        full = directory / rel_path
        if derive:
            pkg = package_import_path(full.parent, module_root, module_path)
        else:
            pkg = package
        file_result = Scanner(full, pkg, namespace=namespace).run()
        found.update(file_result.paths)
        result.files.append(file_result)

    result.paths = sorted(found)
    return result
