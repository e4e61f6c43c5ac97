"""Validation rules for import data."""


def _check_number(row: dict, key: str, row_num: int, cast, errors: list):
    value = str(row.get(key, "") or "").strip()
    if value == "":
        return
    try:
        number = cast(value)
    except (ValueError, TypeError):
        kind = "an integer" if cast is int else "a number"
        errors.append(f"Row {row_num}: {key} must be {kind}")
        return
    if number < 0:
        errors.append(f"Row {row_num}: {key} cannot be negative")


def validate_item_row(row: dict, row_num: int) -> list[str]:
    """Validate a single row of item import data. Returns list of error strings."""
    errors = []

    sku = str(row.get("sku", "") or "").strip()
    if not sku:
        errors.append(f"Row {row_num}: sku is required")
    elif len(sku) > 50:
        errors.append(f"Row {row_num}: sku exceeds 50 chars")

    name = str(row.get("name", "") or "").strip()
    if not name:
        errors.append(f"Row {row_num}: name is required")

    _check_number(row, "default_cost", row_num, float, errors)
    for key in ("min_level", "max_level", "reorder_point"):
        _check_number(row, key, row_num, int, errors)

    if not errors:
        lo = int(str(row.get("min_level", "") or 0).strip() or 0)
        hi = int(str(row.get("max_level", "") or 0).strip() or 0)
        if hi and lo > hi:
            errors.append(
                f"Row {row_num}: min_level cannot exceed max_level"
            )

    return errors

