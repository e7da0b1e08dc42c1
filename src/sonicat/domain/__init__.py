"""Domain layer: catalog records, value objects, ports and exceptions."""
