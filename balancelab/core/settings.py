# balancelab/core/settings.py

import os

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # Флаг для включения debug-режима FastAPI
    app_debug: bool = True

    # Простое обозначение окружения
    environment: str = "dev"

    # Флаг тестового режима (можно переопределить переменной окружения TESTING=1)
    testing: bool = False

    # Параметры итеративного балансового решателя
    balance_max_iterations: int = 50
    balance_tolerance_pct: float = 0.001

    # Разрешённые origins для CORS через запятую
    allowed_origins: str = "http://localhost:5173,http://127.0.0.1:5173"

    # Настройки pydantic-settings (v2)
    model_config = SettingsConfigDict(
        env_file=".env",              # читаем переменные из .env
        env_file_encoding="utf-8",
        extra="ignore",               # игнорируем любые лишние переменные
    )

    @property
    def allowed_origins_list(self) -> list[str]:
        return [o.strip() for o in self.allowed_origins.split(",") if o.strip()]


settings = Settings()

# Авто-определение тестового режима, если запущен pytest
if os.getenv("PYTEST_CURRENT_TEST"):
    settings.testing = True
