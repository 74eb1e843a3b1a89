"""Sample source file for the pkgplugin demo."""

# TODO: Implement proper argument parsing
# FIXME: This function is too slow for large inputs


def process(items: list) -> dict:
    return {item["id"]: item["value"] * 2 for item in items}
