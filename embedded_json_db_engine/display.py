from __future__ import annotations
from typing import Any, Dict, Mapping, Optional

from rich.console import Console
from rich.table import Table
from rich.text import Text

from .utils import compact, field_names


def render_table(tree: Mapping[str, Dict[str, Any]], title: Optional[str] = None) -> Table:
    """
    One row per document, columns are the union of field names (_id first).
    Missing fields render empty; nested values as compact JSON.
    """
    columns = field_names(tree.values())
    table = Table(title=title)
    for name in columns:
        table.add_column(name, overflow="fold")
    for key, doc in tree.items():
        row = []
        for name in columns:
            if name == "_id" and name not in doc:
                row.append(Text(key))
            elif name in doc:
                # Text() keeps "[...]" in values from being parsed as markup
                row.append(Text(compact(doc[name])))
            else:
                row.append(Text(""))
        table.add_row(*row)
    return table


def print_table(tree: Mapping[str, Dict[str, Any]], console: Optional[Console] = None, title: Optional[str] = None) -> None:
    (console or Console()).print(render_table(tree, title=title))
