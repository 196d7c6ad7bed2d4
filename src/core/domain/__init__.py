"""Modelos del dominio.

Session record, sesión, estado del servidor y las formas REST/descarga, como
modelos estrictos de Pydantic v2. Nada aquí hace I/O.
"""
