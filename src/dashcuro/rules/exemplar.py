#!/usr/bin/env python3
"""
DASHCURO EXEMPLAR RULE - Option Enforcement
-------------------------------------------
The ExemplarRule knows what an enabled exemplar option looks like inside a
dashboard model and how to switch it off. Two strategies are supported:

- "text": serialise the model to compact canonical JSON and match/replace
  the literal token `"exemplar":true`.
- "tree": walk the parsed JSON and flip every `exemplar` key whose value is
  boolean True, regardless of where in the tree it sits.

Both strategies share the same serialise -> (replace) -> parse sequence so
the pipeline can report which step failed.

Author: DashCuro Team
Date: 2026-10-18
"""

import json
from typing import Any, Dict, Tuple

STRATEGIES = ("text", "tree")

class ExemplarRule:
    """
    Detects and disables the exemplar query option in dashboard models.
    """

    def __init__(self, key: str = "exemplar", strategy: str = "text"):
        if strategy not in STRATEGIES:
            raise ValueError(f"Unknown strategy '{strategy}'. Expected one of {STRATEGIES}")
        self.key = key
        self.strategy = strategy
        self.enabled_token = json.dumps({key: True}, separators=(",", ":"))[1:-1]
        self.disabled_token = json.dumps({key: False}, separators=(",", ":"))[1:-1]

    @staticmethod
    def serialize(model: Any) -> str:
        """
        Canonical compact form: sorted keys, no whitespace, NaN rejected.
        Raises TypeError/ValueError when the model is not JSON-serialisable
        or holds text that cannot be encoded as UTF-8.
        """
        text = json.dumps(model, sort_keys=True, separators=(",", ":"), ensure_ascii=False, allow_nan=False)
        # lone surrogates survive dumps but cannot go over the wire
        text.encode("utf-8")
        return text

    @staticmethod
    def parse(text: str) -> Dict[str, Any]:
        """Raises ValueError when the text is not a JSON object."""
        data = json.loads(text)
        if not isinstance(data, dict):
            raise ValueError(f"Expected a JSON object, got {type(data).__name__}")
        return data

    def count_enabled(self, node: Any) -> int:
        """Number of `key: true` occurrences in a parsed tree."""
        count = 0
        if isinstance(node, dict):
            for k, v in node.items():
                if k == self.key and v is True:
                    count += 1
                else:
                    count += self.count_enabled(v)
        elif isinstance(node, list):
            for item in node:
                count += self.count_enabled(item)
        return count

    def _disable_in_tree(self, node: Any) -> int:
        changed = 0
        if isinstance(node, dict):
            for k, v in node.items():
                if k == self.key and v is True:
                    node[k] = False
                    changed += 1
                else:
                    changed += self._disable_in_tree(v)
        elif isinstance(node, list):
            for item in node:
                changed += self._disable_in_tree(item)
        return changed

    def matches_text(self, serialized: str) -> bool:
        return self.enabled_token in serialized

    def matches(self, model: Any) -> bool:
        """
        True when the model carries at least one enabled exemplar option.
        Raises TypeError/ValueError under either strategy when the model
        cannot be serialised.
        """
        serialized = self.serialize(model)
        if self.strategy == "tree":
            return self.count_enabled(self.parse(serialized)) > 0
        return self.matches_text(serialized)

    def rewrite_text(self, serialized: str) -> Tuple[str, int]:
        occurrences = serialized.count(self.enabled_token)
        return serialized.replace(self.enabled_token, self.disabled_token), occurrences

    def apply(self, serialized: str) -> Tuple[Dict[str, Any], int]:
        """
        Turns a serialised model into a fresh parsed model with the option
        disabled, plus the number of occurrences flipped.
        Raises ValueError when the (rewritten) text does not parse.
        """
        if self.strategy == "text":
            rewritten, changes = self.rewrite_text(serialized)
            return self.parse(rewritten), changes

        fresh = self.parse(serialized)
        return fresh, self._disable_in_tree(fresh)

    def disable(self, model: Any) -> Tuple[Dict[str, Any], int]:
        """Same as apply() starting from a parsed model, which is left untouched."""
        return self.apply(self.serialize(model))
