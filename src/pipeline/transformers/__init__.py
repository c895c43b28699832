# src/pipeline/transformers/__init__.py — v1
