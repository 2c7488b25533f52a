"""
Custom Filter Example - Skip Archives
Selects every database except archived ones (``archive_*`` or ``*_old``)
"""


def filter(name):
    return not (name.startswith("archive_") or name.endswith("_old"))
