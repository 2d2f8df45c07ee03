"""Sample backend rows shared by the test-suites."""

MEMORY_BACKEND = "datastore.backends.memory.MemoryStore"


def sample_data():
    return {
        "cities": [
            {"id": "city-1", "name": "Belo Horizonte"},
            {"id": "city-2", "name": "Contagem"},
        ],
        "neighborhoods": [
            {"id": "nb-1", "name": "Centro", "city_id": "city-1"},
            {"id": "nb-2", "name": "Savassi", "city_id": "city-1"},
            {"id": "nb-3", "name": "Eldorado", "city_id": "city-2"},
        ],
        "profiles": [
            {"id": "prof-2", "name": "Bruno", "email": "bruno@example.com", "role": "leader", "active": True},
            {"id": "prof-1", "name": "Alice", "email": "alice@example.com", "role": "admin", "active": True},
            {"id": "prof-3", "name": "Carla", "email": "carla@example.com", "role": "leader", "active": False},
        ],
        "pipeline_stages": [
            {"id": "stage-2", "name": "Consolidation", "position": 2, "active": True},
            {"id": "stage-1", "name": "Visitor", "position": 1, "active": True},
            {"id": "stage-3", "name": "Retired", "position": 3, "active": False},
        ],
        "ministries": [
            {"id": "min-1", "name": "Worship", "active": True},
        ],
        "cells": [
            {
                "id": "cell-1",
                "name": "Cell Hope",
                "address": "Rua A, 10",
                "meeting_day": 3,
                "meeting_time": "19:30:00",
                "leader_id": "prof-2",
                "neighborhood_id": "nb-1",
                "active": True,
                "created_at": "2024-01-01T00:00:00+00:00",
                "updated_at": "2024-01-01T00:00:00+00:00",
            },
            {
                "id": "cell-2",
                "name": "Cell Faith",
                "address": "Rua B, 20",
                "meeting_day": 0,
                "meeting_time": "18:00:00",
                "leader_id": None,
                "neighborhood_id": None,
                "active": True,
                "created_at": "2024-01-01T00:00:00+00:00",
                "updated_at": "2024-01-01T00:00:00+00:00",
            },
        ],
        "contacts": [
            {
                "id": "contact-1",
                "name": "Ana",
                "whatsapp": "31999990000",
                "status": "member",
                "encounter_with_god": True,
                "baptized": False,
                "cell_id": "cell-1",
                "pipeline_stage_id": "stage-1",
                "neighborhood": "Centro",
                "city_id": "city-1",
                "ministry_id": None,
                "age": 30,
                "birth_date": "1994-05-12",
                "referred_by": None,
                "photo_url": None,
                "founder": False,
                "leader_id": "prof-2",
            },
            {
                "id": "contact-2",
                "name": "Joao",
                "whatsapp": "31988880000",
                "status": "member",
                "encounter_with_god": False,
                "baptized": True,
                "cell_id": "cell-1",
                "pipeline_stage_id": None,
                "neighborhood": "Savassi",
                "city_id": "city-1",
                "ministry_id": None,
                "age": None,
                "birth_date": "1990-05-03",
                "referred_by": "contact-1",
                "photo_url": None,
                "founder": True,
                "leader_id": None,
            },
            {
                "id": "contact-3",
                "name": "Pedro",
                "whatsapp": None,
                "status": "pending",
                "encounter_with_god": False,
                "baptized": False,
                "cell_id": None,
                "pipeline_stage_id": None,
                "neighborhood": "Eldorado",
                "city_id": "city-2",
                "ministry_id": None,
                "age": None,
                "birth_date": "2000-05-20",
                "referred_by": None,
                "photo_url": None,
                "founder": False,
                "leader_id": None,
            },
        ],
    }
