"""Fetch versioned manifest bundles with ``kustomize build``."""

from __future__ import annotations

from typing import TYPE_CHECKING

from clusterboot.errors import ManifestError

if TYPE_CHECKING:
    from clusterboot.cluster.commands import CommandRunner


def pinned_url(url: str, ref: str) -> str:
    """Append ``?ref=`` to a remote kustomization URL."""
    separator = "&" if "?" in url else "?"
    return f"{url}{separator}ref={ref}"


class KustomizeSource:
    """Manifest source that builds a remote kustomization at a pinned ref."""

    def __init__(self, runner: CommandRunner, binary: str = "kustomize") -> None:
        self._runner = runner
        self._binary = binary

    def fetch(self, url: str, ref: str) -> str:
        """Return the rendered multi-document YAML bundle.

        Raises:
            ManifestError: If the build fails or renders nothing.
        """
        target = pinned_url(url, ref)
        result = self._runner.run([self._binary, "build", target])
        if not result.ok:
            raise ManifestError(
                target,
                f"Failed to fetch manifests, check the version or the repository URL: "
                f"{result.diagnostic}",
            )
        if not result.stdout.strip():
            raise ManifestError(target, "Fetched bundle is empty")
        return result.stdout
