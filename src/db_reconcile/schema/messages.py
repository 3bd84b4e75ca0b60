"""Message templates and the formatter protocol used to render them.

Difference descriptions never call a translation layer directly. Each
difference renders one of the templates below through a
``MessageFormatter``; a localisation layer plugs in by supplying its own
formatter that maps the English template to a translated one.

Templates use positional ``{0}``-style placeholders.
"""

from typing import Protocol


class MessageFormatter(Protocol):
    """Render ``template`` with positional ``args``."""

    def __call__(self, template: str, *args: object) -> str: ...


def default_formatter(template: str, *args: object) -> str:
    """Format the English template with ``str.format``."""
    return template.format(*args)


MISSING_TABLE = "Table `{0}` is missing"
EXTRA_TABLE = "Table `{0}` is not part of the target schema"
MISSING_COLUMN = "Column `{0}`.`{1}` is missing"
EXTRA_COLUMN = "Column `{0}`.`{1}` is not part of the target schema"
DIFFERENT_DATA_TYPE = "Column `{0}`.`{1}` should be of type {2} instead of {3}"
SHOULD_BE_NULL = "Column `{0}`.`{1}` should be marked as NULL"
SHOULD_BE_NOT_NULL = "Column `{0}`.`{1}` should be marked as NOT NULL"
SHOULD_BE_AUTO_INCREMENT = "Column `{0}`.`{1}` should be marked as AUTO_INCREMENT"
SHOULD_NOT_BE_AUTO_INCREMENT = "Column `{0}`.`{1}` should NOT be marked as AUTO_INCREMENT"
DIFFERENT_DEFAULT_VALUE = "Column `{0}`.`{1}` should have default value {2} instead of {3}"
DIFFERENT_COLUMN_CHARSET = "Column `{0}`.`{1}` should use character set {2} instead of {3}"
MISSING_KEY = "Missing {0} in table `{1}`"
EXTRA_KEY = "Extra {0} in table `{1}`"
DIFFERENT_KEY = "Different {0} in table `{1}`"
DIFFERENT_TABLE_CHARSET = "Table `{0}` should use character set {1} instead of {2}"
