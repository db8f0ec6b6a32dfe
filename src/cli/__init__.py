"""CLI tools for the StudyHub pipeline.

- ``python -m src.cli.process`` -- run the document pipeline on a local file
  and print (or save) the generated study material.
- ``python -m src.cli`` -- same as ``src.cli.process``.

All CLI modules use argparse; heavy imports are deferred inside functions
so ``--help`` stays fast.
"""
