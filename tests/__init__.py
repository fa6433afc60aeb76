"""Test package for the Dot Count trainer.

Core modules are exercised headlessly with a fake clock; the pygame smoke
tests use SDL's dummy video/audio drivers so no real window opens. Run
``pytest`` from the project root.
"""
