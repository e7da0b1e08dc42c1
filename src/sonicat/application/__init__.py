"""Application layer: scan orchestration and catalog services."""
