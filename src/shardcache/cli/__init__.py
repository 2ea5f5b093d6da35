"""Command-line interface for shardcache."""
