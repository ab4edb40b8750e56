"""Схемы в формате канвы для тестов движка и API."""

from typing import Any

COMPONENTS = [
    {"id": "fe", "symbol": "Fe", "name": "Iron", "defaultGrade": 60, "isActive": True},
    {"id": "sio2", "symbol": "SiO2", "name": "Silica", "defaultGrade": 40, "isActive": True},
]


def mill_circuit() -> dict[str, Any]:
    """Питание -> мельница -> продукт без данных."""
    return {
        "equipments": [
            {"id": "mill-1", "name": "Ball Mill", "type": "moinho", "parameters": {}},
        ],
        "flowLines": [
            {
                "id": "feed",
                "name": "Feed",
                "toEquipment": "mill-1",
                "flowRate": 1000,
                "solidPercent": 70,
                "density": 2.8,
                "particleSize": 2000,
                "componentGrades": {"fe": 35, "sio2": 65},
            },
            {"id": "product", "name": "Mill Discharge", "fromEquipment": "mill-1"},
        ],
        "mineralComponents": [dict(c) for c in COMPONENTS],
    }


def mixer_circuit() -> dict[str, Any]:
    """Два питания (100 и 200 т/ч) -> смеситель -> продукт."""
    return {
        "equipments": [
            {"id": "mix-1", "name": "Mixer", "type": "mixer", "parameters": {"numberOfInputs": 2}},
        ],
        "flowLines": [
            {
                "id": "a",
                "name": "Feed A",
                "toEquipment": "mix-1",
                "flowRate": 100,
                "solidPercent": 50,
                "density": 2.8,
                "componentGrades": {"fe": 40, "sio2": 60},
            },
            {
                "id": "b",
                "name": "Feed B",
                "toEquipment": "mix-1",
                "flowRate": 200,
                "solidPercent": 50,
                "density": 2.8,
                "componentGrades": {"fe": 55, "sio2": 45},
            },
            {"id": "out", "name": "Mixed", "fromEquipment": "mix-1"},
        ],
        "mineralComponents": [dict(c) for c in COMPONENTS],
    }


def flotation_circuit() -> dict[str, Any]:
    """Питание -> rougher -> концентрат + хвосты."""
    return {
        "equipments": [
            {
                "id": "ro-1",
                "name": "Rougher",
                "type": "rougher",
                "parameters": {"recovery": 90, "grade": 65, "numberOfCells": 6},
            },
        ],
        "flowLines": [
            {
                "id": "feed",
                "name": "Flotation Feed",
                "toEquipment": "ro-1",
                "flowRate": 500,
                "solidPercent": 40,
                "density": 3.2,
                "componentGrades": {"fe": 45, "sio2": 55},
            },
            {"id": "conc", "name": "Rougher Concentrate", "fromEquipment": "ro-1"},
            {"id": "tail", "name": "Rougher Tailing", "fromEquipment": "ro-1"},
        ],
        "mineralComponents": [dict(c) for c in COMPONENTS],
    }


def balanced_split_lines() -> list[dict[str, Any]]:
    """
    Сведённые данные опробования: питание 100 т/ч, концентрат 40, хвосты 60.

    Твёрдое 50% везде; Fe: 20 т/ч в питании, 16 в концентрате, 4 в хвостах.
    """
    return [
        {
            "id": "feed",
            "name": "Feed",
            "toEquipment": "ro-1",
            "flowRate": 100,
            "solidPercent": 50,
            "componentGrades": {"fe": 40, "sio2": 60},
        },
        {
            "id": "conc",
            "name": "Final Concentrate",
            "fromEquipment": "ro-1",
            "flowRate": 40,
            "solidPercent": 50,
            "componentGrades": {"fe": 80, "sio2": 20},
        },
        {
            "id": "tail",
            "name": "Rejeito",
            "fromEquipment": "ro-1",
            "flowRate": 60,
            "solidPercent": 50,
            "componentGrades": {"fe": 40 / 3, "sio2": 260 / 3},
        },
    ]
