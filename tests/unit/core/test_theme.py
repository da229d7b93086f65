"""Unit tests for theme module.

Tests for theme loading, validation, and Rich theme generation.
"""

# pyright: reportPrivateUsage=false

from pathlib import Path
from unittest.mock import patch

import pytest
import treesize.core.theme as theme_module
from rich.theme import Theme
from treesize.core.theme import (
    ThemeColors,
    _load_toml_colors,
    get_rich_theme,
    get_theme,
    get_user_theme_path,
    load_theme,
    reload_theme,
)


class TestThemeColors:
    """Tests for ThemeColors Pydantic model."""

    def test_default_values(self) -> None:
        """ThemeColors has defaults for the size change colors."""
        colors = ThemeColors()
        assert colors.growth == "#f5b332"
        assert colors.shrink == "#03b971"
        assert colors.significant == "#f53263"

    def test_short_hex_accepted(self) -> None:
        """ThemeColors accepts #RGB codes."""
        assert ThemeColors(path="#abc").path == "#abc"

    @pytest.mark.parametrize(
        ("value", "message"),
        [
            ("ffffff", "must start with '#'"),
            ("#ff", "must be #RGB or #RRGGBB"),
            ("#gggggg", "invalid hex color"),
        ],
    )
    def test_invalid_colors(self, value: str, message: str) -> None:
        """ThemeColors rejects malformed color codes."""
        with pytest.raises(ValueError, match=message):
            ThemeColors(growth=value)

    def test_extra_fields_forbidden(self) -> None:
        """ThemeColors rejects unknown fields."""
        with pytest.raises(ValueError):
            ThemeColors(unknown_field="#ffffff")  # type: ignore[call-arg]


class TestLoadTheme:
    """Tests for theme file loading."""

    def test_missing_file(self, tmp_path: Path) -> None:
        """A missing theme file yields None."""
        assert _load_toml_colors(tmp_path / "nonexistent.toml") is None

    def test_invalid_toml(self, tmp_path: Path) -> None:
        """Malformed TOML yields None."""
        theme_file = tmp_path / "theme.toml"
        theme_file.write_text("not valid [ toml syntax")
        assert _load_toml_colors(theme_file) is None

    def test_user_theme_overrides_bundled(self, tmp_path: Path) -> None:
        """User colors override the bundled theme one key at a time."""
        user_theme = tmp_path / "theme.toml"
        user_theme.write_text('[colors]\ngrowth = "#ff0000"\n')

        with patch("treesize.core.theme.get_user_theme_path", return_value=user_theme):
            colors = load_theme()

        assert colors.growth == "#ff0000"
        assert colors.shrink == "#03b971"

    def test_invalid_user_colors_fall_back(self, tmp_path: Path) -> None:
        """An invalid user color falls back to the defaults."""
        user_theme = tmp_path / "theme.toml"
        user_theme.write_text('[colors]\ngrowth = "red"\n')

        with patch("treesize.core.theme.get_user_theme_path", return_value=user_theme):
            colors = load_theme()

        assert colors == ThemeColors()

    def test_user_theme_path(self) -> None:
        """The user theme lives in the treesize config directory."""
        path = get_user_theme_path()
        assert path.parts[-2:] == ("treesize", "theme.toml")


class TestGetRichTheme:
    """Tests for Rich theme generation and caching."""

    def test_includes_diff_styles(self) -> None:
        """The Rich theme defines the styles used by diff tables."""
        theme = get_rich_theme(ThemeColors())
        for name in ("growth", "shrink", "significant", "path", "size", "bold_header"):
            assert name in theme.styles

    def test_significant_is_bold(self) -> None:
        """Significant changes are rendered bold."""
        theme = get_rich_theme(ThemeColors())
        assert theme.styles["significant"].bold

    def test_caches_theme(self) -> None:
        """get_theme returns the cached instance until reloaded."""
        theme_module._cached_theme = None

        first = get_theme()
        assert get_theme() is first

        reloaded = reload_theme()
        assert reloaded is not first
        assert isinstance(reloaded, Theme)
        assert get_theme() is reloaded
