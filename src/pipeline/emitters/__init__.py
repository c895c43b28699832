# src/pipeline/emitters/__init__.py — v1
