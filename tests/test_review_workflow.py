import pytest
from sqlalchemy.exc import OperationalError

from factories import GOOD_FEEDBACK, GOOD_SCORES, make_project, make_user

from reviewhub.errors import (
    DuplicateReview,
    FieldValidationError,
    ProjectNotFound,
    SelfReviewForbidden,
    StoreUnavailable,
)
from reviewhub.models import Review
from reviewhub.services import reviews as reviews_module
from reviewhub.services.aggregation import AggregationEngine
from reviewhub.services.reviews import ReviewRecorder


@pytest.fixture
def recorder():
    return ReviewRecorder(AggregationEngine())


@pytest.fixture
def scenario(session):
    alice = make_user(session, "Alice")
    bob = make_user(session, "Bob")
    carol = make_user(session, "Carol")
    project = make_project(session, alice, title="Essay on rivers")
    return alice, bob, carol, project


def _review_count(session, project_id):
    return session.query(Review).filter(Review.project_id == project_id).count()


def test_first_review_updates_project(session, recorder, scenario):
    alice, bob, _, project = scenario

    review = recorder.submit_review(
        session, bob, project.id, GOOD_SCORES, 4, GOOD_FEEDBACK
    )

    assert review.id is not None
    assert review.created_at is not None
    assert review.is_anonymous is True
    assert review.scores == GOOD_SCORES
    assert review.strengths == "Clear writing"
    assert project.review_count == 1
    assert project.average_rating == pytest.approx(4.0)
    assert [u.id for u in project.reviewers] == [bob.id]
    assert alice.id not in [u.id for u in project.reviewers]


def test_second_review_from_same_reviewer_is_rejected(session, recorder, scenario):
    _, bob, _, project = scenario
    recorder.submit_review(session, bob, project.id, GOOD_SCORES, 4, GOOD_FEEDBACK)

    with pytest.raises(DuplicateReview):
        recorder.submit_review(session, bob, project.id, GOOD_SCORES, 1, GOOD_FEEDBACK)

    assert _review_count(session, project.id) == 1
    assert project.review_count == 1
    assert project.average_rating == pytest.approx(4.0)


def test_average_tracks_every_review(session, recorder, scenario):
    _, bob, carol, project = scenario
    recorder.submit_review(session, bob, project.id, GOOD_SCORES, 4, GOOD_FEEDBACK)
    recorder.submit_review(session, carol, project.id, GOOD_SCORES, 2, GOOD_FEEDBACK)

    assert project.review_count == 2
    assert project.average_rating == pytest.approx(3.0)
    assert {u.id for u in project.reviewers} == {bob.id, carol.id}


def test_out_of_range_score_is_rejected(session, recorder, scenario):
    _, bob, _, project = scenario
    scores = dict(GOOD_SCORES, clarity=6)

    with pytest.raises(FieldValidationError) as exc_info:
        recorder.submit_review(session, bob, project.id, scores, 4, GOOD_FEEDBACK)

    fields = [error["field"] for error in exc_info.value.errors]
    assert fields == ["scores.clarity"]
    assert _review_count(session, project.id) == 0
    assert project.review_count == 0
    assert project.reviewers == []


@pytest.mark.parametrize("bad_value", [0, 4.0, 4.5, "4", True, None])
def test_overall_rating_must_be_integer_in_range(session, recorder, scenario, bad_value):
    _, bob, _, project = scenario

    with pytest.raises(FieldValidationError) as exc_info:
        recorder.submit_review(session, bob, project.id, GOOD_SCORES, bad_value, GOOD_FEEDBACK)

    assert exc_info.value.errors[0]["field"] == "overall_rating"


def test_missing_score_is_reported(session, recorder, scenario):
    _, bob, _, project = scenario
    scores = {k: v for k, v in GOOD_SCORES.items() if k != "technical"}

    with pytest.raises(FieldValidationError) as exc_info:
        recorder.submit_review(session, bob, project.id, scores, 3, GOOD_FEEDBACK)

    assert exc_info.value.errors[0]["field"] == "scores.technical"


def test_required_feedback_must_not_be_blank(session, recorder, scenario):
    _, bob, _, project = scenario
    feedback = {"strengths": "   ", "weaknesses": ""}

    with pytest.raises(FieldValidationError) as exc_info:
        recorder.submit_review(session, bob, project.id, GOOD_SCORES, 3, feedback)

    fields = {error["field"] for error in exc_info.value.errors}
    assert fields == {"feedback.strengths", "feedback.weaknesses"}


def test_feedback_length_limit(session, recorder, scenario):
    _, bob, _, project = scenario
    feedback = dict(GOOD_FEEDBACK, suggestions="x" * 1001)

    with pytest.raises(FieldValidationError) as exc_info:
        recorder.submit_review(session, bob, project.id, GOOD_SCORES, 3, feedback)

    assert exc_info.value.errors[0]["field"] == "feedback.suggestions"


def test_feedback_is_trimmed_and_blank_optional_fields_dropped(session, recorder, scenario):
    _, bob, _, project = scenario
    feedback = {
        "strengths": "  Strong structure  ",
        "weaknesses": "Thin conclusion",
        "suggestions": "   ",
        "general": "Nice work",
    }

    review = recorder.submit_review(session, bob, project.id, GOOD_SCORES, 5, feedback)

    assert review.strengths == "Strong structure"
    assert review.suggestions is None
    assert review.general == "Nice work"


def test_unknown_project(session, recorder, scenario):
    _, bob, _, _ = scenario

    with pytest.raises(ProjectNotFound):
        recorder.submit_review(session, bob, 9999, GOOD_SCORES, 4, GOOD_FEEDBACK)


def test_submitter_cannot_review_own_project(session, recorder, scenario):
    alice, _, _, project = scenario

    with pytest.raises(SelfReviewForbidden):
        recorder.submit_review(session, alice, project.id, GOOD_SCORES, 5, GOOD_FEEDBACK)

    assert _review_count(session, project.id) == 0
    assert project.reviewers == []


def test_store_constraint_catches_race_past_precheck(session, recorder, scenario, monkeypatch):
    _, bob, _, project = scenario
    recorder.submit_review(session, bob, project.id, GOOD_SCORES, 4, GOOD_FEEDBACK)

    # 模拟两个请求都通过了预检查
    monkeypatch.setattr(reviews_module, "check_eligibility", lambda *_args: None)

    with pytest.raises(DuplicateReview):
        recorder.submit_review(session, bob, project.id, GOOD_SCORES, 2, GOOD_FEEDBACK)

    assert _review_count(session, project.id) == 1
    assert len(project.reviewers) == 1
    assert project.average_rating == pytest.approx(4.0)


def test_store_failure_leaves_no_partial_write(session, recorder, scenario, monkeypatch):
    _, bob, _, project = scenario

    def broken_flush(*_args, **_kwargs):
        raise OperationalError("INSERT INTO reviews", {}, Exception("disk I/O error"))

    monkeypatch.setattr(session, "flush", broken_flush)

    with pytest.raises(StoreUnavailable):
        recorder.submit_review(session, bob, project.id, GOOD_SCORES, 4, GOOD_FEEDBACK)

    monkeypatch.undo()
    assert _review_count(session, project.id) == 0
    assert project.reviewers == []


class FlakyAggregationEngine(AggregationEngine):
    def __init__(self):
        super().__init__()
        self.fail_next = True

    def recompute(self, db, project_id):
        if self.fail_next:
            self.fail_next = False
            raise OperationalError("UPDATE projects", {}, Exception("database is locked"))
        return super().recompute(db, project_id)


def test_aggregation_failure_keeps_review_and_schedules_repair(session, scenario):
    _, bob, _, project = scenario
    engine = FlakyAggregationEngine()
    recorder = ReviewRecorder(engine)

    review = recorder.submit_review(session, bob, project.id, GOOD_SCORES, 4, GOOD_FEEDBACK)

    assert review.id is not None
    assert _review_count(session, project.id) == 1
    assert [u.id for u in project.reviewers] == [bob.id]
    assert project.review_count == 0
    assert engine.pending_repairs() == {project.id}

    report = engine.reconcile(session, [])

    assert report.repaired_project_ids == [project.id]
    assert project.review_count == 1
    assert project.average_rating == pytest.approx(4.0)
    assert engine.pending_repairs() == set()
