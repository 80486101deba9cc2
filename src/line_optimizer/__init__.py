"""Rewrite long text into LINE messages under a hard character limit."""
