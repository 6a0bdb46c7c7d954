"""Grain image tooling for the wood species page.

Common entrypoints:

- `wood_grain.manifest`: the species -> grain image filename table
- `wood_grain.html_patch`: adds `grainImage` properties to index.html
- `wood_grain.images`: checks and prepares the `<slug>_400.jpg` assets
"""

__version__ = "0.1.0"
