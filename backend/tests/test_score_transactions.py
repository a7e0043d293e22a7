"""
Score transactions: first entry, corrections, rollback, conflict retry.
"""
import random
from datetime import date

import pytest
from sqlalchemy import update
from sqlmodel import Session, SQLModel, create_engine, select

from leaguehub.errors import ConflictError, IntegrityViolation, NotFoundError, ValidationFailure
from leaguehub.models.match import MATCH_COMPLETED, MATCH_IN_PROGRESS, MATCH_SCHEDULED, Match
from leaguehub.models.team import TEAM_STAT_FIELDS, Team
from leaguehub.models.tournament import Tournament
from leaguehub.services import score_transactions
from leaguehub.services.realtime import TOURNAMENT_UPDATED, RecordingPublisher
from leaguehub.services.schedule_service import generate_schedule
from leaguehub.services.score_transactions import ScoreTransactionManager
from leaguehub.services.standings import SOURCE_SNAPSHOT, calculate_standings
from leaguehub.utils.row_guards import claim_revision


def _stats(session: Session, team_id: int) -> dict:
    team = session.get(Team, team_id)
    session.refresh(team)
    return {field: getattr(team, field) for field in TEAM_STAT_FIELDS}


def _add_match(session: Session, tournament_id: int, home: Team, away: Team) -> Match:
    match = Match(tournament_id=tournament_id, home_team_id=home.id, away_team_id=away.id, status=MATCH_SCHEDULED)
    session.add(match)
    session.commit()
    session.refresh(match)
    return match


@pytest.fixture
def league(session: Session, make_league):
    tournament, (a, b) = make_league(["A", "B"])
    match = _add_match(session, tournament.id, a, b)
    return {"tournament_id": tournament.id, "a": a.id, "b": b.id, "match": match.id}


@pytest.fixture
def manager():
    return ScoreTransactionManager(publisher=RecordingPublisher(), max_attempts=3)


def test_first_submission_records_result(session: Session, league, manager):
    view = manager.submit_score(session, league["match"], 3, 1)

    match = session.get(Match, league["match"])
    assert (match.home_score, match.away_score, match.status) == (3, 1, MATCH_COMPLETED)
    assert _stats(session, league["a"]) == dict(
        played=1, won=1, drawn=0, lost=0, goals_for=3, goals_against=1, goal_difference=2, points=3
    )
    assert _stats(session, league["b"]) == dict(
        played=1, won=0, drawn=0, lost=1, goals_for=1, goals_against=3, goal_difference=-2, points=0
    )
    assert view.id == league["tournament_id"]
    assert view.matches[0].home_score == 3


def test_correction_reverts_previous_score(session: Session, league, manager):
    manager.submit_score(session, league["match"], 3, 1)
    manager.submit_score(session, league["match"], 1, 1)

    expected = dict(played=1, won=0, drawn=1, lost=0, goals_for=1, goals_against=1, goal_difference=0, points=1)
    assert _stats(session, league["a"]) == expected
    assert _stats(session, league["b"]) == expected


def test_rescoring_matches_direct_submission(session: Session, make_league, manager):
    """Submitting A then B ends identical to submitting only B."""
    t1, (a1, b1) = make_league(["A", "B"], name="Corrected")
    m1 = _add_match(session, t1.id, a1, b1)
    t2, (a2, b2) = make_league(["A", "B"], name="Direct")
    m2 = _add_match(session, t2.id, a2, b2)

    manager.submit_score(session, m1.id, 4, 0)
    manager.submit_score(session, m1.id, 0, 2)
    manager.submit_score(session, m2.id, 0, 2)

    assert _stats(session, a1.id) == _stats(session, a2.id)
    assert _stats(session, b1.id) == _stats(session, b2.id)


def test_submission_publishes_tournament_update(session: Session, league):
    publisher = RecordingPublisher()
    manager = ScoreTransactionManager(publisher=publisher)

    manager.submit_score(session, league["match"], 2, 0)

    assert publisher.names() == [TOURNAMENT_UPDATED]
    event = publisher.events[0]
    assert event.tournament_id == league["tournament_id"]
    assert event.data["matches"][0]["status"] == MATCH_COMPLETED


def test_unknown_match_is_not_found(session: Session, league, manager):
    with pytest.raises(NotFoundError):
        manager.submit_score(session, 9999, 1, 0)


@pytest.mark.parametrize("home,away", [(-1, 0), (0, -3), (1.5, 0), ("2", 1), (True, 0)])
def test_invalid_scores_rejected_before_mutation(session: Session, league, manager, home, away):
    with pytest.raises(ValidationFailure):
        manager.submit_score(session, league["match"], home, away)

    match = session.get(Match, league["match"])
    assert match.status == MATCH_SCHEDULED
    assert match.home_score is None
    assert _stats(session, league["a"])["played"] == 0


def test_missing_team_is_integrity_violation_and_rolls_back(session: Session, league, manager):
    session.execute(update(Match).where(Match.id == league["match"]).values(away_team_id=12345))
    session.commit()

    with pytest.raises(IntegrityViolation):
        manager.submit_score(session, league["match"], 1, 0)

    match = session.get(Match, league["match"])
    session.refresh(match)
    assert match.status == MATCH_SCHEDULED
    assert _stats(session, league["a"])["played"] == 0


def test_claim_revision_detects_concurrent_change(session: Session, league):
    match = session.get(Match, league["match"])
    seen = match.revision
    # Another writer bumps the row behind this session's back
    session.execute(
        update(Match)
        .where(Match.id == match.id)
        .values(revision=seen + 1)
        .execution_options(synchronize_session=False)
    )

    with pytest.raises(ConflictError):
        claim_revision(session, match)
    session.rollback()


def test_claim_revision_bumps_revision(session: Session, league):
    match = session.get(Match, league["match"])
    seen = match.revision

    assert claim_revision(session, match) == seen + 1
    session.commit()

    assert session.get(Match, league["match"]).revision == seen + 1


def test_conflict_is_retried_without_double_counting(session: Session, league, manager, monkeypatch):
    real_claim = score_transactions.claim_revision
    calls = {"n": 0}

    def flaky_claim(sess, row):
        calls["n"] += 1
        if calls["n"] == 1:
            raise ConflictError("simulated concurrent edit")
        return real_claim(sess, row)

    monkeypatch.setattr(score_transactions, "claim_revision", flaky_claim)

    manager.submit_score(session, league["match"], 2, 1)

    assert _stats(session, league["a"])["points"] == 3
    assert _stats(session, league["a"])["played"] == 1
    assert _stats(session, league["b"])["played"] == 1


def test_conflict_surfaces_after_max_attempts(session: Session, league, monkeypatch):
    attempts = {"n": 0}

    def always_conflict(sess, row):
        attempts["n"] += 1
        raise ConflictError("simulated concurrent edit")

    monkeypatch.setattr(score_transactions, "claim_revision", always_conflict)
    manager = ScoreTransactionManager(publisher=RecordingPublisher(), max_attempts=2)

    with pytest.raises(ConflictError):
        manager.submit_score(session, league["match"], 2, 1)

    assert attempts["n"] == 2
    assert session.get(Match, league["match"]).status == MATCH_SCHEDULED
    assert _stats(session, league["a"])["played"] == 0


def test_update_match_changes_metadata_only(session: Session, league, manager):
    manager.submit_score(session, league["match"], 2, 2)

    view = manager.update_match(session, league["match"], {"venue": "North Pitch", "date": date(2026, 6, 1)})

    match = view.matches[0]
    assert match.venue == "North Pitch"
    assert match.date == date(2026, 6, 1)
    assert (match.home_score, match.away_score, match.status) == (2, 2, MATCH_COMPLETED)
    assert _stats(session, league["a"])["points"] == 1


def test_update_match_rejects_score_fields(session: Session, league, manager):
    with pytest.raises(ValidationFailure):
        manager.update_match(session, league["match"], {"home_score": 5})


def test_update_unknown_match_is_not_found(session: Session, league, manager):
    with pytest.raises(NotFoundError):
        manager.update_match(session, 424242, {"venue": "Nowhere"})


def test_status_transitions(session: Session, league, manager):
    view = manager.set_match_status(session, league["match"], MATCH_IN_PROGRESS)
    assert view.matches[0].status == MATCH_IN_PROGRESS

    with pytest.raises(ValidationFailure):
        manager.set_match_status(session, league["match"], MATCH_COMPLETED)

    manager.submit_score(session, league["match"], 1, 0)
    with pytest.raises(ValidationFailure):
        manager.set_match_status(session, league["match"], MATCH_SCHEDULED)


def test_snapshot_and_recomputed_standings_agree(session: Session, make_league):
    """Random results with corrections: both standings derivations stay identical."""
    tournament, teams = make_league(["Ajax", "Benfica", "Celtic", "Dynamo", "Everton"])
    publisher = RecordingPublisher()
    manager = ScoreTransactionManager(publisher=publisher)
    generate_schedule(session, publisher, tournament.id, date(2026, 4, 1), matches_per_day=3, time_slot_interval=90)

    match_ids = session.exec(select(Match.id).where(Match.tournament_id == tournament.id).order_by(Match.id)).all()
    rng = random.Random(4545)
    for match_id in match_ids[:8]:
        manager.submit_score(session, match_id, rng.randint(0, 4), rng.randint(0, 4))
    for match_id in rng.sample(match_ids[:8], 3):
        manager.submit_score(session, match_id, rng.randint(0, 4), rng.randint(0, 4))

    recomputed = [s.to_dict() for s in calculate_standings(session, tournament.id)]
    from_snapshot = [s.to_dict() for s in calculate_standings(session, tournament.id, SOURCE_SNAPSHOT)]

    assert recomputed == from_snapshot
    assert sum(s["played"] for s in recomputed) == 16


def test_interleaved_submissions_on_same_match_do_not_double_count(tmp_path, monkeypatch):
    """A competing writer commits 3-1 while a 1-1 submission holds its reads; final stats reflect only 1-1."""
    engine = create_engine(f"sqlite:///{tmp_path / 'league.db'}", connect_args={"check_same_thread": False})
    SQLModel.metadata.create_all(engine)

    with Session(engine) as setup:
        tournament = Tournament(name="Interleaved")
        setup.add(tournament)
        setup.commit()
        home = Team(tournament_id=tournament.id, name="Home")
        away = Team(tournament_id=tournament.id, name="Away")
        setup.add_all([home, away])
        setup.commit()
        match = Match(tournament_id=tournament.id, home_team_id=home.id, away_team_id=away.id)
        setup.add(match)
        setup.commit()
        match_id, home_id, away_id = match.id, home.id, away.id

    first = Session(engine)
    second = Session(engine)
    real_lock_row = score_transactions.lock_row
    competing = {"committed": False}

    def lock_row_with_competing_writer(session, model, row_id):
        row = real_lock_row(session, model, row_id)
        # First session has read the match and a team; the other writer lands now
        if session is first and model is Team and not competing["committed"]:
            competing["committed"] = True
            ScoreTransactionManager().submit_score(second, match_id, 3, 1)
        return row

    monkeypatch.setattr(score_transactions, "lock_row", lock_row_with_competing_writer)

    try:
        ScoreTransactionManager(max_attempts=3).submit_score(first, match_id, 1, 1)
    finally:
        first.close()
        second.close()

    assert competing["committed"]
    with Session(engine) as check:
        final = check.get(Match, match_id)
        assert (final.home_score, final.away_score, final.status) == (1, 1, MATCH_COMPLETED)
        expected = dict(played=1, won=0, drawn=1, lost=0, goals_for=1, goals_against=1, goal_difference=0, points=1)
        assert _stats(check, home_id) == expected
        assert _stats(check, away_id) == expected
    engine.dispose()
