"""Resolution of pluggable engine classes by name."""

from importlib import import_module


def normalize_engine_name(engine: str) -> str:
    """Canonical spelling of an engine name, e.g. " QDRANT " -> "Qdrant"."""
    return engine.strip().lower().capitalize()


def load_engine_class(package: str, class_prefix: str, engine: str) -> type:
    """Import the class implementing an engine.

    Engines live in ``{package}.{engine}.{class_prefix}{Engine}``, e.g.
    ``shared.clients.rag.qdrant.RAGClientQdrant`` for package
    "shared.clients.rag", prefix "RAGClient" and engine "qdrant".

    Raises:
        ValueError: If the engine name is empty or no such class exists.
    """
    if not engine or not engine.strip():
        raise ValueError(f"No engine configured for {class_prefix}.")
    name = normalize_engine_name(engine)
    class_name = f"{class_prefix}{name}"
    try:
        module = import_module(f"{package}.{name.lower()}.{class_name}")
        return getattr(module, class_name)
    except (ImportError, AttributeError) as e:
        raise ValueError(f"Unsupported engine '{name}' for {class_prefix}: {e}")
