CATEGORY_NAME = "Fun"
CATEGORY_DESCRIPTION = "Commands that are just for fun."
