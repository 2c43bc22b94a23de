"""Tests for workspace teardown."""

import os
from pathlib import Path

import pytest

from triforge.clean import clean_workspace
from triforge.errors import FilesystemError


def test_clean_removes_trees(tmp_path: Path) -> None:
    (tmp_path / "target" / "wasm32-unknown-emscripten" / "release").mkdir(parents=True)
    (tmp_path / "out" / "release").mkdir(parents=True)
    (tmp_path / "out" / "release" / "todo_mvc.wasm").write_bytes(b"\0asm")

    removed = clean_workspace([tmp_path / "target", tmp_path / "out"], project_dir=tmp_path)

    assert removed == [tmp_path / "target", tmp_path / "out"]
    assert list(tmp_path.iterdir()) == []


def test_clean_twice_is_a_no_op(tmp_path: Path) -> None:
    (tmp_path / "out").mkdir()
    paths = [tmp_path / "target", tmp_path / "out"]

    clean_workspace(paths)
    assert clean_workspace(paths) == []


def test_clean_tolerates_absent_paths(tmp_path: Path) -> None:
    assert clean_workspace([tmp_path / "never-built"]) == []


def test_clean_removes_plain_file(tmp_path: Path) -> None:
    stray = tmp_path / "out"
    stray.write_text("not a directory")
    assert clean_workspace([stray]) == [stray]
    assert not stray.exists()


def test_clean_refuses_project_dir(tmp_path: Path) -> None:
    with pytest.raises(FilesystemError, match="refusing"):
        clean_workspace([tmp_path], project_dir=tmp_path)


def test_clean_refuses_parent_of_project_dir(tmp_path: Path) -> None:
    project = tmp_path / "project"
    project.mkdir()
    with pytest.raises(FilesystemError):
        clean_workspace([tmp_path], project_dir=project)
    assert project.exists()


@pytest.mark.skipif(os.name == "nt" or os.geteuid() == 0, reason="permission bits not enforced")
def test_clean_permission_denied(tmp_path: Path) -> None:
    locked = tmp_path / "out"
    (locked / "release").mkdir(parents=True)
    (locked / "release" / "a.js").write_text("x")
    (locked / "release").chmod(0o500)
    try:
        with pytest.raises(FilesystemError) as exc_info:
            clean_workspace([locked])
        assert exc_info.value.operation == "remove"
    finally:
        (locked / "release").chmod(0o700)
