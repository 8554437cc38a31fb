import pytest

from agriconnect.config.settings import Settings
from agriconnect.core.errors import ValidationFailure
from agriconnect.domain.models import EquipmentCreate, JobCreate, Notification, User, UserUpdate, UserUpsert
from agriconnect.services.marketplace import Marketplace
from agriconnect.store.repository import InMemoryRepository


def _marketplace() -> Marketplace:
    # No geocoder/content collaborators: labels fall back to "lat, lng".
    return Marketplace(InMemoryRepository(), Settings())


def _login(m: Marketplace, phone: str, role: str, lat: float, lng: float, name: str = "") -> User:
    return m.upsert_user(UserUpsert(phone=phone, role=role, lat=lat, lng=lng, name=name or None))


def test_upsert_is_idempotent_on_phone_and_preserves_id():
    m = _marketplace()
    first = _login(m, "9000000001", "FARMER", 12.97, 77.59, name="Asha")
    again = m.upsert_user(UserUpsert(phone="9000000001", role="FARMER", location="Hebbal"))

    assert again.id == first.id
    assert again.name == "Asha"
    assert again.location == "Hebbal"
    assert again.lat == 12.97
    assert len(m.repository.find_all("users")) == 1


def test_upsert_keeps_stored_role():
    m = _marketplace()
    first = _login(m, "1", "FARMER", 12.97, 77.59)
    again = m.upsert_user(UserUpsert(phone="1", role="WORKER"))
    assert again.id == first.id
    assert again.role == "FARMER"


def test_new_user_defaults():
    m = _marketplace()
    user = _login(m, "1", "WORKER", 12.97, 77.59)
    assert user.name == "Unknown"
    assert user.available is True
    assert user.location == "12.97, 77.59"


def test_signup_without_coordinates_uses_fallback_coordinate():
    m = _marketplace()
    user = m.upsert_user(UserUpsert(phone="1", role="FARMER", name="Asha"))
    assert (user.lat, user.lng) == (20.5937, 78.9629)
    assert user.location == "20.59, 78.96"


@pytest.mark.parametrize("payload", [UserUpsert(phone="1"), UserUpsert(role="FARMER"), UserUpsert()])
def test_upsert_requires_phone_and_role(payload):
    m = _marketplace()
    with pytest.raises(ValidationFailure, match="Phone and Role are required"):
        m.upsert_user(payload)
    assert m.repository.find_all("users") == []


def test_update_user_can_clear_availability():
    m = _marketplace()
    worker = _login(m, "1", "WORKER", 12.97, 77.59)
    updated = m.update_user(worker.id, UserUpdate(available=False))
    assert updated.available is False
    assert updated.phone == "1"
    assert m.update_user("missing", UserUpdate(name="x")) is None


def test_post_job_validation_leaves_store_unchanged():
    m = _marketplace()
    farmer = _login(m, "1", "FARMER", 12.97, 77.59)
    with pytest.raises(ValidationFailure):
        m.post_job(JobCreate(farmer_id=farmer.id, wage=500))
    with pytest.raises(ValidationFailure):
        m.post_job(JobCreate(farmer_id=farmer.id, work_type="Harvesting"))
    assert m.repository.find_all("jobs") == []
    assert m.repository.find_all("notifications") == []


def test_post_job_forces_open_status_and_inherits_farmer_location():
    m = _marketplace()
    farmer = _login(m, "1", "FARMER", 12.97, 77.59, name="Asha")
    job = m.post_job(JobCreate(farmer_id=farmer.id, work_type="Harvesting", wage=500, date="2026-10-20"))

    assert job.status == "OPEN"
    assert job.farmer_name == "Asha"
    assert (job.lat, job.lng) == (12.97, 77.59)
    assert job.location == farmer.location
    assert job.date == "2026-10-20"
    assert job.rating == 0


def test_job_status_accepts_any_known_transition():
    m = _marketplace()
    farmer = _login(m, "1", "FARMER", 12.97, 77.59)
    job = m.post_job(JobCreate(farmer_id=farmer.id, work_type="Sowing", wage=300))

    assert m.update_job_status(job.id, "COMPLETED").status == "COMPLETED"
    assert m.update_job_status(job.id, "OPEN").status == "OPEN"
    with pytest.raises(ValidationFailure):
        m.update_job_status(job.id, "DONE")
    assert m.update_job_status("missing", "FILLED") is None


def test_list_jobs_requires_origin_or_farmer():
    m = _marketplace()
    with pytest.raises(ValidationFailure):
        m.list_jobs(lat=12.97)


def test_end_to_end_worker_discovers_and_is_notified_of_job():
    m = _marketplace()
    farmer = _login(m, "1", "FARMER", 12.97, 77.59, name="Asha")
    worker = _login(m, "2", "WORKER", 12.99, 77.60, name="Ravi")

    # The worker signup notified the farmer.
    farmer_notes = m.list_notifications(farmer.id)
    assert [n.type for n in farmer_notes] == ["WORKER"]
    assert "Ravi" in farmer_notes[0].message

    workers = m.list_workers(12.97, 77.59)
    assert [w.id for w in workers] == [worker.id]
    assert 2.3 <= workers[0].distance <= 2.6

    job = m.post_job(JobCreate(farmer_id=farmer.id, work_type="Wheat Harvesting", wage=500))

    notes = m.list_notifications(worker.id)
    assert len(notes) == 1
    assert notes[0].message == "New Job: Wheat Harvesting at Asha"

    nearby = m.list_jobs(lat=12.99, lng=77.60, radius_km=10)
    assert [j.id for j in nearby] == [job.id]
    assert nearby[0].status == "OPEN"
    assert 2.3 <= nearby[0].distance <= 2.6

    m.update_job_status(job.id, "FILLED")
    assert m.list_jobs(lat=12.99, lng=77.60) == []
    assert [j.status for j in m.list_jobs(farmer_id=farmer.id)] == ["FILLED"]


def test_default_radius_comes_from_settings():
    m = _marketplace()
    _login(m, "1", "WORKER", 13.07, 77.59)  # ~11 km north
    assert m.list_workers(12.97, 77.59) == []
    assert len(m.list_workers(12.97, 77.59, 15)) == 1


def test_add_equipment_requires_name_and_rent_and_uses_stock_image():
    m = _marketplace()
    provider = _login(m, "1", "PROVIDER", 12.97, 77.59)
    with pytest.raises(ValidationFailure):
        m.add_equipment(EquipmentCreate(provider_id=provider.id, name="Tractor"))

    item = m.add_equipment(EquipmentCreate(provider_id=provider.id, name="Swaraj 744", rent_per_day=1200))
    assert item.image == Settings().content.fallback_image_uri
    assert item.available is True
    assert [e.id for e in m.list_equipment(12.97, 77.59)] == [item.id]


def test_notifications_newest_first_with_insertion_tiebreak():
    m = _marketplace()
    repo = m.repository
    for i, ts in enumerate([100, 300, 300, 200]):
        repo.insert("notifications", Notification(user_id="u1", message=f"m{i}", type="SYSTEM", timestamp=ts))
    repo.insert("notifications", Notification(user_id="u2", message="other", type="SYSTEM", timestamp=999))

    assert [n.message for n in m.list_notifications("u1")] == ["m2", "m1", "m3", "m0"]
    assert m.list_notifications("nobody") == []


def test_half_supplied_coordinates_are_rejected():
    m = _marketplace()
    with pytest.raises(ValidationFailure, match="lat and lng"):
        m.upsert_user(UserUpsert(phone="1", role="FARMER", lat=12.97))
    farmer = _login(m, "2", "FARMER", 12.97, 77.59)
    with pytest.raises(ValidationFailure, match="lat and lng"):
        m.post_job(JobCreate(farmer_id=farmer.id, work_type="Sowing", wage=300, lng=77.60))
    with pytest.raises(ValidationFailure, match="lat and lng"):
        m.add_equipment(EquipmentCreate(provider_id="p1", name="Swaraj 744", rent_per_day=1200, lat=12.99))

    assert [u.phone for u in m.repository.find_all("users")] == ["2"]
    assert m.repository.find_all("jobs") == []
    assert m.repository.find_all("equipment") == []
