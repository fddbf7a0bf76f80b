"""Host-side components: storage, stats, charts and logging."""
