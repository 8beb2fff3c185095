from __future__ import annotations

from pathlib import Path

from opl_manager.config import ToolSettings
from opl_manager.core.pops_companion import (
    MISSING_TEMPLATE_MESSAGE,
    add_to_conf_apps,
    elf_name_for,
    ensure_pops_elf,
    remove_from_conf_apps,
    remove_pops_elf,
)


def _opl_root(tmp_path: Path) -> Path:
    root = tmp_path / "OPL"
    (root / "POPS").mkdir(parents=True)
    return root


def test_elf_name_for_uses_vcd_stem() -> None:
    assert elf_name_for("/mnt/opl/POPS/SCUS_941.63.Final Fantasy VII.VCD") == "XX.SCUS_941.63.Final Fantasy VII.ELF"


def test_ensure_pops_elf_copies_popstarter(tmp_path: Path) -> None:
    root = _opl_root(tmp_path)
    (root / "POPS" / "POPSTARTER.ELF").write_bytes(b"ELF-TEMPLATE")

    result = ensure_pops_elf(str(root / "POPS" / "Game.VCD"), str(root), settings=ToolSettings())

    assert result.success
    assert result.elf_name == "XX.Game.ELF"
    assert (root / "POPS" / "XX.Game.ELF").read_bytes() == b"ELF-TEMPLATE"
    assert not result.skipped


def test_ensure_pops_elf_falls_back_to_existing_stub(tmp_path: Path) -> None:
    root = _opl_root(tmp_path)
    (root / "POPS" / "xx.Other Game.elf").write_bytes(b"STUB")

    result = ensure_pops_elf(str(root / "POPS" / "New.VCD"), str(root), settings=ToolSettings())

    assert result.success
    assert (root / "POPS" / "XX.New.ELF").read_bytes() == b"STUB"


def test_ensure_pops_elf_prefers_configured_template(tmp_path: Path) -> None:
    root = _opl_root(tmp_path)
    (root / "POPS" / "POPSTARTER.ELF").write_bytes(b"LOCAL")
    override = tmp_path / "custom.elf"
    override.write_bytes(b"OVERRIDE")

    result = ensure_pops_elf(str(root / "POPS" / "Game.VCD"), str(root), settings=ToolSettings(elf_template=str(override)))

    assert result.success
    assert (root / "POPS" / "XX.Game.ELF").read_bytes() == b"OVERRIDE"


def test_ensure_pops_elf_existing_target_is_skipped(tmp_path: Path) -> None:
    root = _opl_root(tmp_path)
    (root / "POPS" / "POPSTARTER.ELF").write_bytes(b"NEW")
    (root / "POPS" / "XX.Game.ELF").write_bytes(b"OLD")

    result = ensure_pops_elf(str(root / "POPS" / "Game.VCD"), str(root), settings=ToolSettings())

    assert result.success
    assert result.skipped
    assert (root / "POPS" / "XX.Game.ELF").read_bytes() == b"OLD"


def test_ensure_pops_elf_without_template_fails(tmp_path: Path) -> None:
    root = _opl_root(tmp_path)

    result = ensure_pops_elf(str(root / "POPS" / "Game.VCD"), str(root), settings=ToolSettings())

    assert not result.success
    assert result.message == MISSING_TEMPLATE_MESSAGE
    assert "POPS_ELF_TEMPLATE" in result.message


def test_add_to_conf_apps_is_idempotent(tmp_path: Path) -> None:
    root = _opl_root(tmp_path)
    conf = root / "conf_apps.cfg"
    conf.write_text("OPL Launcher=mass:/APPS/OPL.ELF\r\n\r\n", encoding="utf-8")

    first = add_to_conf_apps(str(root), 'Final "Fantasy" VII\n', "XX.FF7.ELF")
    second = add_to_conf_apps(str(root), "Another label", "XX.FF7.ELF")

    assert first.success and not first.skipped
    assert second.success and second.skipped
    assert conf.read_text(encoding="utf-8") == (
        "OPL Launcher=mass:/APPS/OPL.ELF\n"
        "(PSX) Final Fantasy VII=mass:/POPS/XX.FF7.ELF\n"
    )


def test_add_to_conf_apps_creates_registry_with_elf_name_label(tmp_path: Path) -> None:
    root = _opl_root(tmp_path)

    result = add_to_conf_apps(str(root), "", "XX.Game.ELF")

    assert result.success
    assert (root / "conf_apps.cfg").read_text(encoding="utf-8") == "(PSX) XX.Game.ELF=mass:/POPS/XX.Game.ELF\n"


def test_remove_from_conf_apps_rewrites_only_on_change(tmp_path: Path) -> None:
    root = _opl_root(tmp_path)
    conf = root / "conf_apps.cfg"
    conf.write_text("(PSX) A=mass:/POPS/XX.A.ELF\n(PSX) B=mass:/POPS/XX.B.ELF\n", encoding="utf-8")
    before = conf.stat().st_mtime_ns

    untouched = remove_from_conf_apps(str(root), "XX.C.ELF")
    assert untouched.success and untouched.skipped
    assert conf.stat().st_mtime_ns == before

    removed = remove_from_conf_apps(str(root), "XX.A.ELF")
    assert removed.success and not removed.skipped
    assert conf.read_text(encoding="utf-8") == "(PSX) B=mass:/POPS/XX.B.ELF\n"

    remove_from_conf_apps(str(root), "XX.B.ELF")
    assert conf.read_text(encoding="utf-8") == ""


def test_remove_from_missing_registry_is_skipped(tmp_path: Path) -> None:
    root = _opl_root(tmp_path)

    result = remove_from_conf_apps(str(root), "XX.A.ELF")

    assert result.success
    assert result.skipped
    assert not (root / "conf_apps.cfg").exists()


def test_remove_pops_elf_missing_is_not_an_error(tmp_path: Path) -> None:
    root = _opl_root(tmp_path)
    (root / "POPS" / "XX.A.ELF").write_bytes(b"x")

    assert remove_pops_elf(str(root), "XX.A.ELF").success
    assert not (root / "POPS" / "XX.A.ELF").exists()
    missing = remove_pops_elf(str(root), "XX.A.ELF")
    assert missing.success and missing.skipped


def test_add_to_conf_apps_keeps_legacy_encoded_entries(tmp_path: Path) -> None:
    root = _opl_root(tmp_path)
    conf = root / "conf_apps.cfg"
    conf.write_bytes(b"(PSX) Pok\xe9mon=mass:/POPS/XX.Poke.ELF\n")

    result = add_to_conf_apps(str(root), "Game", "XX.Game.ELF")

    assert result.success and not result.skipped
    content = conf.read_text(encoding="utf-8")
    assert "=mass:/POPS/XX.Poke.ELF\n" in content
    assert content.endswith("(PSX) Game=mass:/POPS/XX.Game.ELF\n")


def test_remove_from_conf_apps_with_legacy_encoded_entries(tmp_path: Path) -> None:
    root = _opl_root(tmp_path)
    conf = root / "conf_apps.cfg"
    conf.write_bytes(b"(PSX) Pok\xe9mon=mass:/POPS/XX.Poke.ELF\n(PSX) B=mass:/POPS/XX.B.ELF\n")

    removed = remove_from_conf_apps(str(root), "XX.Poke.ELF")

    assert removed.success and not removed.skipped
    assert conf.read_text(encoding="utf-8") == "(PSX) B=mass:/POPS/XX.B.ELF\n"
