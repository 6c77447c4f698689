from src.prereq_checker.utils.quantities import cpu_to_millicores, normalize_memory, parse_quantity

__all__ = ["cpu_to_millicores", "normalize_memory", "parse_quantity"]
