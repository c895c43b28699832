# src/pipeline/filters/__init__.py — v1
