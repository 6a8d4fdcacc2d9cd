"""Reply formatting helpers (embeds) used by the dispatch pipeline and commands."""
