"""Release pipeline.

Leaf-first:
- version: tag ref -> version string
- builder: compile, strip and package the binary
- publish: create the release record and attach the archive
- formula: compute the download URL and bump the Homebrew formula
- pipeline: the state machine sequencing all of the above
"""

from __future__ import annotations
