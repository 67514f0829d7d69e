# src/core/__init__.py
"""
Доменный слой клиента.
Логика жизненного цикла поездки, независимая от транспорта и UI.
"""
