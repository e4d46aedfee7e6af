# ============================================================================
# livescene/__init__.py
# Package Marker for the Live Scene Engine
# ============================================================================
#
# PURPOSE:
# Turns a tag/attribute document into a live graph of typed facets, and
# hot-patches that graph at runtime through name-addressed functions.
#
# LAYOUT:
# - base/: configuration, scene context, event bus
# - registry/: type descriptors, type registry, named functions, built-in types
# - notation/: attribute value notation and the value deserializer
# - document/: document model, markup parsing, loading
# - scene/: object store, name index, assembler, host runtime
# - patch/: trigger bindings and the live patch engine
# - cli/: the `livescene` command
#
# ============================================================================

__version__ = "0.4.0"
