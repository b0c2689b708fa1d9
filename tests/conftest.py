from __future__ import annotations

from pathlib import Path
from typing import Any

import pytest

REGISTRY = "registry+https://github.com/rust-lang/crates.io-index"


class CargoProject:
    """Builds ``cargo metadata`` shaped dictionaries over crates on disk."""

    def __init__(self, root: Path) -> None:
        self.root = root
        self.packages: dict[str, dict[str, Any]] = {}
        self.nodes: dict[str, dict[str, Any]] = {}
        self.members: list[str] = []

    def add_crate(
        self,
        name: str,
        version: str = "0.1.0",
        *,
        files: dict[str, str] | None = None,
        member: bool = False,
        local: bool = True,
        targets: list[tuple[str, str]] | None = None,
    ) -> str:
        """Add a crate; ``targets`` lists (kind, relative src path) pairs."""
        if local:
            crate_dir = self.root / name
            package_id = f"path+file://{crate_dir.as_posix()}#{name}@{version}"
            source = None
        else:
            crate_dir = self.root / "registry" / f"{name}-{version}"
            package_id = f"{REGISTRY}#{name}@{version}"
            source = REGISTRY

        if files is None:
            files = {"src/lib.rs": "pub fn f() {}\n"}
        if local:
            crate_dir.mkdir(parents=True, exist_ok=True)
            (crate_dir / "Cargo.toml").write_text(
                f'[package]\nname = "{name}"\nversion = "{version}"\n',
                encoding="utf-8",
            )
            for relative, text in files.items():
                path = crate_dir / relative
                path.parent.mkdir(parents=True, exist_ok=True)
                path.write_text(text, encoding="utf-8")

        if targets is None:
            targets = [("lib", "src/lib.rs")]
        self.packages[package_id] = {
            "id": package_id,
            "name": name,
            "version": version,
            "source": source,
            "manifest_path": str(crate_dir / "Cargo.toml"),
            "targets": [
                {"name": name, "kind": [kind], "src_path": str(crate_dir / src)}
                for kind, src in targets
            ],
        }
        self.nodes[package_id] = {"id": package_id, "deps": []}
        if member:
            self.members.append(package_id)
        return package_id

    def depend(
        self,
        source: str,
        target: str,
        kind: str | None = None,
        platform: str | None = None,
    ) -> None:
        deps = self.nodes[source]["deps"]
        entry = next((dep for dep in deps if dep["pkg"] == target), None)
        if entry is None:
            entry = {
                "name": self.packages[target]["name"],
                "pkg": target,
                "dep_kinds": [],
            }
            deps.append(entry)
        entry["dep_kinds"].append({"kind": kind, "target": platform})

    def metadata(self, root: str | None = None) -> dict[str, Any]:
        if root is None and self.members:
            root = self.members[0]
        return {
            "packages": list(self.packages.values()),
            "workspace_members": list(self.members),
            "workspace_root": str(self.root),
            "resolve": {"nodes": list(self.nodes.values()), "root": root},
        }


@pytest.fixture
def cargo_project(tmp_path: Path) -> CargoProject:
    root = tmp_path / "ws"
    root.mkdir()
    return CargoProject(root.resolve())
