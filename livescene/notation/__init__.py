"""Attribute value notation: tokenizer, parser and typed deserializer."""
