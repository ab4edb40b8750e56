# Rate limiting configuration for BalanceLab
# Использует slowapi для защиты расчётных эндпоинтов от перегрузки

from slowapi import Limiter
from slowapi.util import get_remote_address

# Инициализация лимитера с использованием IP адреса клиента
limiter = Limiter(key_func=get_remote_address)

# Предустановленные лимиты для различных типов операций
RATE_LIMITS = {
    # Итеративный баланс и полная симуляция (самые дорогостоящие)
    "balance_operations": "30/minute",
    # Анализ чувствительности: N повторных анализов схемы
    "sensitivity_operations": "10/minute",
    # Распространение данных, проверка топологии, разовый анализ
    "analysis_operations": "60/minute",
    # Формулы в замкнутой форме (лёгкие)
    "calculator_operations": "100/minute",
}

__all__ = ["limiter", "RATE_LIMITS"]
