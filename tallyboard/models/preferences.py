"""UI preferences kept in the local store."""

from enum import Enum


THEME_STORAGE_KEY = "app_theme"


class Theme(str, Enum):
    DARK = "dark"
    LIGHT = "light"
    BLUE = "blue"
    GREEN = "green"
    PURPLE = "purple"


DEFAULT_THEME = Theme.DARK
