#!/usr/bin/env python3
# Example usage of embedded_record_log: insert, query, sort/project, delete.

import os
import tempfile

from rich.console import Console

from embedded_record_log import Database

_console = Console()

def progress_printer(evt):
    phase = evt.get("phase", "")
    pct = int(evt.get("pct", 0))
    msg = evt.get("msg", "")
    parts = [p for p in (phase, f"{pct}%", (f"- {msg}" if msg else "")) if p]
    _console.print("[dim][progress] " + " ".join(parts) + "[/dim]")

def main() -> None:
    with tempfile.TemporaryDirectory() as tmp_dir:
        path = os.path.join(tmp_dir, "people.log")
        open(path, "w").close()
        run(path)

def run(path: str) -> None:
    # bio is searchable with $text
    db = Database(path, ["bio"], on_progress=progress_printer)

    db.insert({"id": 1, "name": "Alice", "age": 33, "bio": "Loves Go and Rust"})
    db.insert({"id": 2, "name": "Bob", "age": 17, "bio": "Plays chess"})
    db.insert({"id": 3, "name": "Carol", "age": 41, "bio": "Writes Rust daily"})

    _console.print("Rust fans:", db.find({"$text": "rust"}, {"projection": {"name": 1}}))
    _console.print("Adults, oldest first:", db.find(
        {"age": {"$gt": 17}},
        {"sort": {"age": -1}, "projection": {"name": 1, "age": 1}},
    ))

    n = db.delete({"$or": [{"name": {"$eq": "Bob"}}, {"age": {"$lt": 18}}]})
    _console.print("Deleted (tombstoned):", n)
    _console.print("Left:", db.count({}))

    with open(path, encoding="utf-8") as fh:
        _console.print(fh.read(), highlight=False)

if __name__ == "__main__":
    main()
