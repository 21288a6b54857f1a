# apps/security/serializers.py
"""Сериализаторы модуля security."""

from rest_framework import serializers


class PinVerifySerializer(serializers.Serializer):
    """Запрос на проверку PIN."""

    identity = serializers.CharField(max_length=255, trim_whitespace=True)
    pin = serializers.RegexField(r'^\d{4,8}$', trim_whitespace=True)
