#!/usr/bin/env python3
"""
Seed script: наполняет базу примерами задач с тегами через HTTP API.

Сервер должен быть запущен:
    todo-api
    python scripts/seed_data.py

Переменные окружения:
    API_URL - адрес API (по умолчанию http://127.0.0.1:8787)
    API_KEY - ключ, если на сервере включена авторизация
"""

import os
import sys

import requests

API_URL = os.environ.get("API_URL", "http://127.0.0.1:8787")
API_KEY = os.environ.get("API_KEY")

HEADERS = {"Content-Type": "application/json"}
if API_KEY:
    HEADERS["X-API-Key"] = API_KEY

TAGS = ["work", "docs", "review", "maintenance", "重要"]

TODOS = [
    {
        "title": "Complete project documentation",
        "description": "Write comprehensive documentation for the ToDo app",
        "dueDate": "2025-11-01T00:00:00Z",
        "completed": False,
        "tags": ["Work", "docs"],
    },
    {
        "title": "Review pull requests",
        "description": "Review and merge pending pull requests",
        "dueDate": "2025-10-28T00:00:00Z",
        "completed": True,
        "tags": ["work", "review", "重要"],
    },
    {
        "title": "Update dependencies",
        "description": None,
        "dueDate": None,
        "completed": False,
        "tags": ["maintenance"],
    },
]


def create_tag(name: str) -> dict:
    """Создать тег (201) или получить существующий (200)."""
    response = requests.post(f"{API_URL}/api/tags", json={"name": name}, headers=HEADERS, timeout=10)
    response.raise_for_status()
    status = "created" if response.status_code == 201 else "exists"
    print(f"  🏷  {name} ({status})")
    return response.json()


def create_todo(data: dict) -> dict:
    """Создать задачу с тегами."""
    response = requests.post(f"{API_URL}/api/todos", json=data, headers=HEADERS, timeout=10)
    if response.status_code != 201:
        print(f"  ❌ {data['title']}: {response.status_code} {response.text}")
        response.raise_for_status()
    todo = response.json()
    tags = ", ".join(tag["name"] for tag in todo["tags"])
    print(f"  ✅ {todo['title']} [{tags}]")
    return todo


def main() -> int:
    print(f"Seeding {API_URL} ...")

    try:
        requests.get(f"{API_URL}/health", timeout=5).raise_for_status()
    except requests.RequestException as e:
        print(f"API недоступен: {e}")
        return 1

    print("Теги:")
    for name in TAGS:
        create_tag(name)

    print("Задачи:")
    for data in TODOS:
        create_todo(data)

    print("Seeding completed!")
    return 0


if __name__ == "__main__":
    sys.exit(main())
