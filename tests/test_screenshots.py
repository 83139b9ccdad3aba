"""Tests for capture command templating."""

from pathlib import Path

import pytest

from ascella.config import ScreenshotType, images_dir
from ascella.environment import ToolKind
from ascella.screenshots import (
    CaptureMode,
    cmd_for_tool,
    cmd_from_type,
    generate_file_path,
)


class TestGenerateFilePath:
    """Tests for generate_file_path()."""

    def test_under_images_dir(self, ascella_home):
        path = generate_file_path()

        assert path.parent == ascella_home / "images"
        assert path.parent == images_dir()
        assert path.suffix == ".png"

    def test_does_not_create_directory(self, tmp_path):
        path = generate_file_path(tmp_path / "images")
        assert not path.parent.exists()

    def test_name_starts_with_sortable_timestamp(self, tmp_path):
        name = generate_file_path(tmp_path).name
        # 2026-10-18_12-55-01-123_ab12cd.png
        date, time_part, suffix = name.split("_")
        assert len(date) == 10 and date.count("-") == 2
        assert len(time_part) == 12 and time_part.count("-") == 3
        assert len(suffix) == len("ab12cd.png")

    def test_unique_within_the_same_second(self, tmp_path):
        paths = {generate_file_path(tmp_path) for _ in range(500)}
        assert len(paths) == 500


class TestBuiltinCommands:
    """Tests for built-in tool templates."""

    @pytest.mark.parametrize("tool", list(ToolKind))
    @pytest.mark.parametrize("mode", list(CaptureMode))
    def test_path_appears_exactly_once(self, tool, mode, tmp_path):
        command = cmd_for_tool(tool, mode, tmp_path)

        assert command.command_line.count(str(command.output_path)) == 1
        assert command.command_line.split()[0] == tool.executable
        assert command.tool_name == tool.executable

    @pytest.mark.parametrize("tool", list(ToolKind))
    def test_paths_unique_across_modes(self, tool, tmp_path):
        paths = [cmd_for_tool(tool, mode, tmp_path).output_path for mode in CaptureMode]
        assert len(set(paths)) == len(paths)

    def test_spectacle_commands(self, tmp_path):
        area = cmd_for_tool(ToolKind.KDE, CaptureMode.AREA, tmp_path)
        window = cmd_for_tool(ToolKind.KDE, CaptureMode.WINDOW, tmp_path)
        full = cmd_for_tool(ToolKind.KDE, CaptureMode.FULL, tmp_path)

        assert area.command_line == f"spectacle -rbno {area.output_path}"
        assert window.command_line == f"spectacle -abno {window.output_path}"
        assert full.command_line == f"spectacle -fbno {full.output_path}"

    def test_grim_area_uses_region_selector(self, tmp_path):
        command = cmd_for_tool(ToolKind.COMPOSITOR, CaptureMode.AREA, tmp_path)

        assert command.selector == "slurp"
        assert command.command_line == f"grim -g {{geometry}} {command.output_path}"

    def test_grim_full_has_no_selector(self, tmp_path):
        command = cmd_for_tool(ToolKind.COMPOSITOR, CaptureMode.FULL, tmp_path)

        assert command.selector is None
        assert command.command_line == f"grim {command.output_path}"

    def test_builtin_type_resolves_its_tool(self, tmp_path):
        command = cmd_from_type(
            ScreenshotType(type="Scrot"), CaptureMode.WINDOW, directory=tmp_path
        )
        assert command.command_line == f"scrot --border --focused {command.output_path}"

    def test_auto_type_uses_probed_tool(self, tmp_path):
        command = cmd_from_type(
            ScreenshotType(), CaptureMode.FULL, tool=ToolKind.GNOME, directory=tmp_path
        )
        assert command.command_line == f"gnome-screenshot -f {command.output_path}"

    def test_auto_type_without_tool_is_an_error(self, tmp_path):
        with pytest.raises(ValueError):
            cmd_from_type(ScreenshotType(), CaptureMode.FULL, directory=tmp_path)


class TestCustomCommands:
    """Tests for user supplied templates."""

    def test_file_placeholder_substituted_once(self, tmp_path):
        s_type = ScreenshotType.custom(area="mytool -o {file}")

        command = cmd_from_type(s_type, CaptureMode.AREA, directory=tmp_path)

        assert command.command_line == f"mytool -o {command.output_path}"
        assert "{file}" not in command.command_line
        assert command.tool_name == "mytool"

    def test_mode_picks_matching_template(self, tmp_path):
        s_type = ScreenshotType.custom(
            area="a {file}", screen="s {file}", window="w {file}"
        )

        assert cmd_from_type(s_type, CaptureMode.AREA, directory=tmp_path).command_line.startswith("a ")
        assert cmd_from_type(s_type, CaptureMode.FULL, directory=tmp_path).command_line.startswith("s ")
        assert cmd_from_type(s_type, CaptureMode.WINDOW, directory=tmp_path).command_line.startswith("w ")

    def test_legacy_image_placeholder(self, tmp_path):
        s_type = ScreenshotType.custom(screen="grab --out=%image --quiet")

        command = cmd_from_type(s_type, CaptureMode.FULL, directory=tmp_path)

        assert command.command_line == f"grab --out={command.output_path} --quiet"

    def test_template_without_placeholder_left_alone(self, tmp_path):
        s_type = ScreenshotType.custom(window="true")

        command = cmd_from_type(s_type, CaptureMode.WINDOW, directory=tmp_path)

        assert command.command_line == "true"
        assert isinstance(command.output_path, Path)

    def test_empty_template_resolves_to_empty_command(self, tmp_path):
        s_type = ScreenshotType.custom(area="mytool {file}")

        command = cmd_from_type(s_type, CaptureMode.WINDOW, directory=tmp_path)

        assert command.command_line == ""
        assert command.tool_name == "custom"
