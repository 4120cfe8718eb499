# Copyright Krafter SAS <developer@krafter.io>
# MIT License (see LICENSE file).

import re
import unicodedata


GROUP_SEPARATOR = re.compile(r"\s*\|\s*|\s+OR\s+")
WORD = re.compile(r"\w+")


class QueryTokenizer:
    """
    Split a text into groups of tokens.

    Groups are separated by ``|`` or an uppercase ``OR``, tokens are the
    lowercased words of a group with accents removed. Hosts provide their own
    tokenizer by registering it under this class:

        register_service(MyTokenizer(), QueryTokenizer, force=True)
    """

    def tokenize(self, text: str) -> list[list[str]]:
        groups = []

        for part in GROUP_SEPARATOR.split(text or ""):
            tokens = [self.normalize(word) for word in WORD.findall(part)]

            if tokens:
                groups.append(tokens)

        return groups

    def normalize(self, word: str) -> str:
        decomposed = unicodedata.normalize("NFKD", word.lower())

        return "".join(c for c in decomposed if not unicodedata.combining(c))


__all__ = [
    "QueryTokenizer",
]
