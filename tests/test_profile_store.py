from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor

from app.records import ActivityType, UserActivity, UserPreference
from app.seed_data import seed_profiles
from app.stores.profiles import ProfileStore

NOW = 1_700_000_000_000


def _activity(user_id: int, timestamp: int, movie_id: int = 1) -> UserActivity:
    return UserActivity(
        user_id=user_id,
        movie_id=movie_id,
        movie_title=f"Movie {movie_id}",
        activity_type=ActivityType.VIEW,
        timestamp=timestamp,
    )


def test_record_activity_assigns_sequential_ids_across_users() -> None:
    store = ProfileStore()

    first = store.record_activity(_activity(1, NOW))
    second = store.record_activity(_activity(2, NOW))
    third = store.record_activity(_activity(1, NOW + 1))

    assert [first.id, second.id, third.id] == [1, 2, 3]


def test_record_activity_never_repeats_ids_under_concurrency() -> None:
    store = ProfileStore()

    with ThreadPoolExecutor(max_workers=8) as pool:
        stored = list(
            pool.map(
                lambda index: store.record_activity(_activity(index % 5, NOW + index)),
                range(500),
            )
        )

    ids = [activity.id for activity in stored]
    assert len(set(ids)) == 500
    assert sorted(ids) == list(range(1, 501))


def test_activity_history_filters_sorts_and_limits() -> None:
    store = ProfileStore()
    for offset in (5, 1, 9, 3, 7):
        store.record_activity(_activity(1, NOW + offset))
    store.record_activity(_activity(2, NOW + 100))

    history = store.activity_history(1, limit=3, since_timestamp=NOW + 2)

    assert [activity.timestamp for activity in history] == [NOW + 9, NOW + 7, NOW + 5]
    assert all(activity.user_id == 1 for activity in history)


def test_activity_history_for_unknown_user_is_empty() -> None:
    store = ProfileStore()

    assert store.activity_history(99, limit=10, since_timestamp=0) == []


def test_seeded_history_is_newest_first() -> None:
    store = ProfileStore()
    seed_profiles(store, now_ms=NOW)

    history = store.activity_history(1, limit=10, since_timestamp=0)

    assert [activity.movie_title for activity in history] == [
        "The Dark Knight",
        "The Shawshank Redemption",
    ]
    assert store.get_by_id(2).favorite_genres == ["Drama", "Romance"]


def test_upsert_preference_overwrites_weight_for_same_key_and_value() -> None:
    store = ProfileStore()

    store.upsert_preference(UserPreference(1, "genre", "Action", 0.2))
    store.upsert_preference(UserPreference(1, "genre", "Drama", 0.5))
    store.upsert_preference(UserPreference(1, "genre", "Action", 0.9))

    weights = {
        (preference.preference_key, preference.preference_value): preference.weight
        for preference in store.preferences_for_user(1)
    }
    assert weights == {("genre", "Action"): 0.9, ("genre", "Drama"): 0.5}
    assert store.preferences_for_user(2) == []


def test_batch_upsert_counts_and_scopes_to_user() -> None:
    store = ProfileStore()
    preferences = [
        UserPreference(3, "genre", "Comedy", 0.4),
        UserPreference(4, "actor", "Someone", 0.6),
    ]

    assert store.batch_upsert_preferences(3, preferences) == 2
    assert {preference.user_id for preference in store.preferences_for_user(3)} == {3}
    assert store.preferences_for_user(4) == []
