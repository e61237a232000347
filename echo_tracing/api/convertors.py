from __future__ import annotations

from starlette.convertors import Convertor, register_url_convertor


class NonEmptyPathConvertor(Convertor):
    """Like Starlette's ``path`` convertor, but refuses an empty capture.

    ``$`` in the route pattern Starlette builds also matches before a final
    newline; the lookahead stops such a path from matching with the newline
    cut off.
    """

    regex = r".+(?!\n)"

    def convert(self, value: str) -> str:
        return value

    def to_string(self, value: str) -> str:
        return value


register_url_convertor("nonempty_path", NonEmptyPathConvertor())
