from werkzeug.routing import IntegerConverter

from ..validation import MAX_DB_INT


class DbIdConverter(IntegerConverter):
    """<id:...> path segment: a positive integer that fits a database id column."""

    def __init__(self, url_map):
        super().__init__(url_map, min=1, max=MAX_DB_INT)
