"""Export rendered diagrams to an output directory.

The output tree mirrors the diagram tree relative to the project root, with
the ``.puml`` suffix swapped for the image format:

    docs/arch/system.puml -> dist_puml/docs/arch/system.png
"""

from __future__ import annotations

import shutil
from collections.abc import Iterable
from pathlib import Path

import aiofiles
from loguru import logger

from mdpuml.cache import RenderCache
from mdpuml.errors import RenderError
from mdpuml.http_client import RenderClient
from mdpuml.logging import log

__all__ = ["ArtifactMap", "export_artifacts", "output_path_for"]

# format -> diagram path -> exported image path
ArtifactMap = dict[str, dict[Path, Path]]

# PlantUML answers 400 for sources with nothing to draw (only !define,
# skinparam, etc.) but still returns an error image in the body
NO_CONTENT_STATUS = 400


def output_path_for(
    diagram: Path, root_directory: Path, dist_directory: Path, image_format: str
) -> Path:
    """Compute where the ``image_format`` rendering of ``diagram`` is written."""
    try:
        relative = diagram.relative_to(root_directory)
    except ValueError:
        relative = Path(diagram.name)
    return dist_directory / relative.with_suffix(f".{image_format}")


async def _save_diagram(
    client: RenderClient, encoded: str, image_format: str, output: Path
) -> None:
    try:
        data = await client.fetch_image(image_format, encoded)
    except RenderError as e:
        if e.status_code != NO_CONTENT_STATUS:
            logger.warning(f"Failed to save {client.render_url(image_format, encoded)} to {output}")
            raise
        logger.warning(f"Diagram has no renderable content, saving server response to {output}")
        data = e.body

    output.parent.mkdir(parents=True, exist_ok=True)
    async with aiofiles.open(output, "wb") as f:
        await f.write(data)

    if not output.exists():
        logger.error(
            f"Diagram could not be saved to {output}\n"
            f"Buffered data: {data.decode('utf-8', errors='replace')}"
        )


async def export_artifacts(
    cache: RenderCache,
    client: RenderClient,
    *,
    root_directory: Path,
    dist_directory: Path,
    image_formats: Iterable[str],
) -> ArtifactMap:
    """Write every resolved diagram in every requested format.

    The output directory is deleted first, so each export is a clean rebuild.

    Returns:
        Mapping of format to diagram path to written image path.

    Raises:
        RenderError: For any render failure other than a no-content response.
    """
    formats = list(image_formats)
    with log("exporter.export", dist=str(dist_directory), formats=",".join(formats)) as span:
        shutil.rmtree(dist_directory, ignore_errors=True)

        artifacts: ArtifactMap = {fmt: {} for fmt in formats}
        for diagram, entry in cache.entries():
            for fmt in formats:
                output = output_path_for(diagram, root_directory, dist_directory, fmt)
                await _save_diagram(client, entry.encoding, fmt, output)
                artifacts[fmt][diagram] = output

        span.add(files=sum(len(v) for v in artifacts.values()))
        return artifacts
