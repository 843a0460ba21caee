"""L0 Data — pinned constants and known filesystem layouts."""
