CATEGORY_NAME = "Misc"
CATEGORY_DESCRIPTION = "Everything else."
