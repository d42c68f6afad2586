import pytest
from fastapi import HTTPException

from carebook.application.services.facilities_service import FacilitiesService


class FakeFacilitiesRepo:
    def __init__(self):
        self.facilities = {}
        self.reviews = []
        self.last_filters = None

    def list(self, filters):
        self.last_filters = filters
        rows = list(self.facilities.values())
        return rows[filters.skip:filters.skip + filters.limit], len(rows)

    def get(self, facility_id):
        return self.facilities.get(facility_id)

    def create(self, facility):
        facility.id = len(self.facilities) + 1
        self.facilities[facility.id] = facility
        return facility

    def save(self, facility):
        self.facilities[facility.id] = facility
        return facility

    def add_review(self, review):
        self.reviews.append(review)
        return review

    def ratings(self, facility_id):
        return [r.rating for r in self.reviews if r.facility_id == facility_id]


def make_service():
    repo = FakeFacilitiesRepo()
    return FacilitiesService(repo=repo), repo


def test_create_and_owner_update():
    svc, _ = make_service()
    facility = svc.create("owner-1", {"name": "City Clinic", "type": "clinic", "city": "Pune", "specialties": ["ENT"]})
    assert facility.owner_user_id == "owner-1"
    assert facility.specialties == ["ENT"]
    out = svc.update("owner-1", facility.id, {"phone": "020-1234"})
    assert out.phone == "020-1234"
    with pytest.raises(HTTPException) as exc:
        svc.update("someone-else", facility.id, {"phone": "0"})
    assert exc.value.status_code == 403


def test_create_rejects_unknown_type():
    svc, _ = make_service()
    with pytest.raises(HTTPException):
        svc.create("owner-1", {"name": "Spa", "type": "spa"})


def test_list_clamps_limit_and_trims_search():
    svc, repo = make_service()
    svc.list(search="  heart ", limit=1000, skip=-5)
    assert repo.last_filters.search == "heart"
    assert repo.last_filters.limit == 100
    assert repo.last_filters.skip == 0


def test_list_rejects_unknown_sort():
    svc, _ = make_service()
    with pytest.raises(HTTPException):
        svc.list(sort_by="distance")


def test_reviews_update_average():
    svc, _ = make_service()
    facility = svc.create("owner-1", {"name": "Lab One", "type": "lab"})
    svc.add_review("u1", facility.id, 5)
    out = svc.add_review("u2", facility.id, 4, "Quick")
    assert out.rating_count == 2
    assert out.rating_overall == 4.5
    with pytest.raises(HTTPException):
        svc.add_review("u3", facility.id, 6)


def test_missing_facility_is_404():
    svc, _ = make_service()
    with pytest.raises(HTTPException) as exc:
        svc.get(42)
    assert exc.value.status_code == 404
