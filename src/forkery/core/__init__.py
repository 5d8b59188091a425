"""Core orchestration engine: configuration, ports, processes, dev servers."""
