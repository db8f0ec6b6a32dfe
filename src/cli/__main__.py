"""Allow ``python -m src.cli`` execution; delegates to the process command."""

from src.cli.process import main

main()
