"""
Custom Comparator Example - Newest First
Orders date suffixed databases (``orders_2024_05``) newest first, others last by name
"""
import re

DATE_SUFFIX = re.compile(r"(\d{4})[_-](\d{2})$")


def _date_key(name):
    match = DATE_SUFFIX.search(name)
    return (int(match.group(1)), int(match.group(2))) if match else None


def comparator(a, b):
    date_a, date_b = _date_key(a), _date_key(b)

    if date_a and date_b:
        return (date_a < date_b) - (date_a > date_b)
    if date_a:
        return -1
    if date_b:
        return 1
    return (a > b) - (a < b)
