# ============================================================================
# livescene/registry/__init__.py
# Type and Function Registries
# ============================================================================
#
# KEY MODULES:
# - descriptors.py: shapes and capabilities of registered types
# - type_registry.py: name -> TypeDescriptor table
# - function_registry.py: name -> (input type, output type, callable) table
# - builtins.py: facet types every scene understands
#
# ============================================================================
