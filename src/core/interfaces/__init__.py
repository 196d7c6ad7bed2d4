"""Contratos (Protocol) del Core.

El handshake depende de una fuente de records y de un health probe; el
módulo de descargas, de reglas de scraping. Los adapters los implementan y
los tests los sustituyen.
"""
