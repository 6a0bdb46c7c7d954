"""Small helpers with no project-specific knowledge (config files, logging)."""
