"""mdpuml - keep PlantUML diagrams in markdown rendered and linked.

Features:
- Resolves $link references between .puml files so rendered SVGs link to
  each other
- Inlines relative !include files before encoding
- Rewrites hidden markdown directives into links, images or embedded SVGs
- Optionally exports PNG/SVG files mirroring the source tree

Usage:
    # Rewrite markdown in the current project
    mdpuml

    # Embed locally rendered SVGs
    mdpuml --embed --puml-server-url http://localhost:8080

    # Keep re-running every 5 seconds
    mdpuml --hot-reload --interval-seconds 5
"""

from importlib.metadata import version

__version__ = version("mdpuml")

__all__ = ["__version__"]
