# apps/security/exceptions.py
"""Исключения модуля security."""


class PinRejected(Exception):
    """Неверный PIN или неизвестный идентификатор."""
