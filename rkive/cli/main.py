# rkive/cli/main.py

from __future__ import annotations

import typer
from rkive.cli import papers_cli, query_cli

app = typer.Typer(help="CLI tools for the R-kive research paper repository.")

app.add_typer(query_cli.app, name="query")
app.add_typer(papers_cli.app, name="papers")

if __name__ == "__main__":
    app()
