CATEGORY_NAME = "Management"
CATEGORY_DESCRIPTION = "Server configuration: prefix, staff ranks, command toggles, filters and megalog."
