"""Built-in commands. Each subpackage below is a help category."""

CATEGORY_NAME = "Commands"
CATEGORY_DESCRIPTION = "Use the help command with a category or command name for details."
