"""Access graph model, assembly and search."""
