"""
Tests Module: Unit and Integration Tests

Test Coverage:
    - Distance kernels (Manhattan, weighted Manhattan, divergence)
    - Bounded selectors (nearest neighbors, top topic weight)
    - Store, corpus snapshot and shard writer
    - Pairwise engine, partitioning and the parallel export
    - Configuration, logging, metrics and the HTTP handlers
"""
