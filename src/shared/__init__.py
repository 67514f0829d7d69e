# src/shared/__init__.py
"""
Общий код клиента.

Модули:
- models: DTO и Pydantic-модели обмена с сервисами
"""

__all__: list[str] = []
