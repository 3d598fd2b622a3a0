import datetime as dt

import pytest

from app.core.errors import Conflict, Forbidden, InvalidInput, NotFound
from app.crud.aula import aula_crud
from app.models.aula import Aula, AulaStatus
from app.schemas.aula import AulaCancel, AulaCreate, AulasLoteCreate, AulaUpdate, ListAulasQuery
from conftest import actor_for

UTC = dt.timezone.utc


@pytest.fixture
def cenario(db, factory):
    academia = factory.academia()
    staff = factory.staff(academia)
    turma = factory.turma(academia, dias=(1, 3), horario=dt.time(19, 0))
    return academia, actor_for(staff), turma


def _lote(turma_id, **extra):
    data = {"turma_id": turma_id, "from_date": "2025-01-06", "to_date": "2025-01-10"}
    data.update(extra)
    return AulasLoteCreate(**data)


# ---------------- lote ----------------

def test_batch_creates_one_class_per_matching_weekday(db, cenario):
    _, staff, turma = cenario

    result = aula_crud.create_batch(db, staff, _lote(turma.id))

    assert result.criadas == 2
    assert result.ignoradas == 0
    inicios = sorted(a.data_inicio for a in db.query(Aula).filter(Aula.turma_id == turma.id))
    # 19:00 em São Paulo = 22:00 UTC
    assert inicios == [
        dt.datetime(2025, 1, 6, 22, 0, tzinfo=UTC),
        dt.datetime(2025, 1, 8, 22, 0, tzinfo=UTC),
    ]
    aula = db.query(Aula).filter(Aula.turma_id == turma.id).first()
    assert aula.data_fim - aula.data_inicio == dt.timedelta(minutes=90)
    assert aula.status == AulaStatus.AGENDADA.value


def test_batch_rerun_skips_existing(db, cenario):
    _, staff, turma = cenario
    aula_crud.create_batch(db, staff, _lote(turma.id))

    again = aula_crud.create_batch(db, staff, _lote(turma.id))

    assert again.criadas == 0
    assert again.ignoradas == 2
    assert [c.motivo for c in again.conflitos] == ["AULA_JA_EXISTE", "AULA_JA_EXISTE"]
    assert again.conflitos[0].data_inicio == dt.datetime(2025, 1, 6, 22, 0, tzinfo=UTC)


def test_batch_race_falls_back_to_row_by_row(db, cenario, monkeypatch):
    _, staff, turma = cenario
    quarta = dt.datetime(2025, 1, 8, 22, 0, tzinfo=UTC)
    add_all = db.add_all

    # outra requisição cria a aula de quarta entre a consulta e o commit do lote
    def add_all_concorrente(objs):
        db.add(Aula(
            academia_id=turma.academia_id,
            turma_id=turma.id,
            data_inicio=quarta,
            data_fim=quarta + dt.timedelta(hours=1),
            status=AulaStatus.AGENDADA.value,
        ))
        db.commit()
        add_all(objs)

    monkeypatch.setattr(db, "add_all", add_all_concorrente)

    result = aula_crud.create_batch(db, staff, _lote(turma.id))

    assert result.criadas == 1
    assert result.ignoradas == 1
    assert [(c.data_inicio, c.motivo) for c in result.conflitos] == [(quarta, "AULA_JA_EXISTE")]
    assert db.query(Aula).filter(Aula.deleted_at.is_(None)).count() == 2


def test_batch_body_overrides_template(db, cenario):
    _, staff, turma = cenario

    result = aula_crud.create_batch(
        db, staff, _lote(turma.id, dias_semana=[5], hora_inicio="07:30", duracao_minutos=45)
    )

    assert result.criadas == 1
    aula = db.query(Aula).filter(Aula.turma_id == turma.id).one()
    assert aula.data_inicio == dt.datetime(2025, 1, 10, 10, 30, tzinfo=UTC)
    assert aula.data_fim == dt.datetime(2025, 1, 10, 11, 15, tzinfo=UTC)


def test_batch_rejects_inverted_range(db, cenario):
    _, staff, turma = cenario
    with pytest.raises(InvalidInput) as exc:
        aula_crud.create_batch(db, staff, _lote(turma.id, from_date="2025-01-10", to_date="2025-01-06"))
    assert exc.value.details["field"] == "to_date"


def test_batch_rejects_bad_date_format(db, cenario):
    _, staff, turma = cenario
    with pytest.raises(InvalidInput) as exc:
        aula_crud.create_batch(db, staff, _lote(turma.id, from_date="06/01/2025"))
    assert exc.value.details["field"] == "from_date"


def test_batch_requires_weekdays(db, factory, cenario):
    academia, staff, _ = cenario
    sem_dias = factory.turma(academia, nome="Sem dias", dias=())
    with pytest.raises(InvalidInput) as exc:
        aula_crud.create_batch(db, staff, _lote(sem_dias.id))
    assert exc.value.details["field"] == "dias_semana"


def test_batch_on_deleted_template_conflicts(db, cenario):
    _, staff, turma = cenario
    turma.deleted_at = dt.datetime.now(UTC)
    db.commit()
    with pytest.raises(Conflict) as exc:
        aula_crud.create_batch(db, staff, _lote(turma.id))
    assert exc.value.code == "TURMA_DELETADA"


# ---------------- criação individual ----------------

def test_create_rejects_end_equal_start(db, cenario):
    _, staff, turma = cenario
    inicio = dt.datetime(2025, 2, 1, 12, 0, tzinfo=UTC)
    with pytest.raises(InvalidInput):
        aula_crud.create(db, staff, AulaCreate(turma_id=turma.id, data_inicio=inicio, data_fim=inicio))


def test_create_rejects_duplicate_start(db, cenario):
    _, staff, turma = cenario
    inicio = dt.datetime(2025, 2, 1, 12, 0, tzinfo=UTC)
    body = AulaCreate(turma_id=turma.id, data_inicio=inicio, data_fim=inicio + dt.timedelta(hours=1))
    aula_crud.create(db, staff, body)

    with pytest.raises(Conflict) as exc:
        aula_crud.create(db, staff, body)
    assert exc.value.code == "AULA_DUPLICADA"


def test_create_duplicate_caught_by_constraint(db, cenario, monkeypatch):
    _, staff, turma = cenario
    inicio = dt.datetime(2025, 2, 1, 12, 0, tzinfo=UTC)
    body = AulaCreate(turma_id=turma.id, data_inicio=inicio, data_fim=inicio + dt.timedelta(hours=1))
    aula_crud.create(db, staff, body)
    monkeypatch.setattr(aula_crud, "ensure_unique", lambda *args, **kwargs: None)

    with pytest.raises(Conflict) as exc:
        aula_crud.create(db, staff, body)
    assert exc.value.code == "AULA_DUPLICADA"
    assert db.query(Aula).count() == 1


def test_naive_times_are_academia_local(db, cenario):
    _, staff, turma = cenario
    aula = aula_crud.create(
        db, staff,
        AulaCreate(
            turma_id=turma.id,
            data_inicio=dt.datetime(2025, 2, 1, 9, 0),
            data_fim=dt.datetime(2025, 2, 1, 10, 0),
        ),
    )
    assert aula.data_inicio == dt.datetime(2025, 2, 1, 12, 0, tzinfo=UTC)


def test_create_requires_staff(db, factory, cenario):
    academia, _, turma = cenario
    aluno = actor_for(factory.user(academia))
    inicio = dt.datetime(2025, 2, 1, 12, 0, tzinfo=UTC)
    with pytest.raises(Forbidden):
        aula_crud.create(db, aluno, AulaCreate(turma_id=turma.id, data_inicio=inicio, data_fim=inicio + dt.timedelta(hours=1)))


# ---------------- atualização ----------------

def test_update_moves_times_and_checks_uniqueness(db, factory, cenario):
    _, staff, turma = cenario
    a1 = factory.aula(turma, dt.datetime(2025, 2, 1, 12, 0, tzinfo=UTC))
    a2 = factory.aula(turma, dt.datetime(2025, 2, 2, 12, 0, tzinfo=UTC))

    with pytest.raises(Conflict):
        aula_crud.update(db, a2.id, staff, AulaUpdate(data_inicio=a1.data_inicio, data_fim=a1.data_fim))

    moved = aula_crud.update(
        db, a2.id, staff,
        AulaUpdate(data_inicio=dt.datetime(2025, 2, 3, 12, 0, tzinfo=UTC), data_fim=dt.datetime(2025, 2, 3, 13, 0, tzinfo=UTC)),
    )
    assert moved.data_inicio == dt.datetime(2025, 2, 3, 12, 0, tzinfo=UTC)


def test_update_keeps_end_after_start(db, factory, cenario):
    _, staff, turma = cenario
    aula = factory.aula(turma, dt.datetime(2025, 2, 1, 12, 0, tzinfo=UTC))
    with pytest.raises(InvalidInput):
        aula_crud.update(db, aula.id, staff, AulaUpdate(data_fim=dt.datetime(2025, 2, 1, 11, 0, tzinfo=UTC)))


# ---------------- QR / ciclo de vida ----------------

def test_issue_qr_sets_token_and_expiry(db, factory, cenario):
    _, staff, turma = cenario
    aula = factory.aula(turma)

    before = dt.datetime.now(UTC)
    qr = aula_crud.issue_qr_code(db, aula.id, staff)

    assert len(qr.qr_token) == 64
    assert before + dt.timedelta(minutes=4) < qr.expires_at <= dt.datetime.now(UTC) + dt.timedelta(minutes=5)
    assert qr.turma == turma.nome
    assert qr.qr_image.startswith("data:image/png;base64,")


def test_reissuing_qr_replaces_previous_token(db, factory, cenario):
    _, staff, turma = cenario
    aula = factory.aula(turma)

    first = aula_crud.issue_qr_code(db, aula.id, staff)
    second = aula_crud.issue_qr_code(db, aula.id, staff)

    assert first.qr_token != second.qr_token
    db.refresh(aula)
    assert aula.qr_token == second.qr_token


def test_qr_refused_on_cancelled_and_ended(db, factory, cenario):
    _, staff, turma = cenario
    cancelada = factory.aula(turma, status=AulaStatus.CANCELADA)
    encerrada = factory.aula(turma, dt.datetime(2025, 2, 1, 12, 0, tzinfo=UTC), status=AulaStatus.ENCERRADA)

    with pytest.raises(Conflict) as exc:
        aula_crud.issue_qr_code(db, cancelada.id, staff)
    assert exc.value.code == "AULA_CANCELADA"
    with pytest.raises(Conflict) as exc:
        aula_crud.issue_qr_code(db, encerrada.id, staff)
    assert exc.value.code == "AULA_ENCERRADA"


def test_end_clears_qr_and_is_idempotent(db, factory, cenario):
    _, staff, turma = cenario
    aula = factory.aula(turma)
    aula_crud.issue_qr_code(db, aula.id, staff)

    first = aula_crud.end(db, aula.id, staff)
    assert first.status == AulaStatus.ENCERRADA.value
    assert first.qr_token is None and first.qr_expires_at is None

    second = aula_crud.end(db, aula.id, staff)
    assert second.status == AulaStatus.ENCERRADA.value
    assert second.qr_token is None and second.qr_expires_at is None


def test_end_rejects_cancelled(db, factory, cenario):
    _, staff, turma = cenario
    aula = factory.aula(turma, status=AulaStatus.CANCELADA)
    with pytest.raises(Conflict) as exc:
        aula_crud.end(db, aula.id, staff)
    assert exc.value.code == "AULA_CANCELADA"


def test_cancel_clears_qr_and_records_reason(db, factory, cenario):
    _, staff, turma = cenario
    aula = factory.aula(turma)
    aula_crud.issue_qr_code(db, aula.id, staff)

    cancelada = aula_crud.cancel(db, aula.id, staff, AulaCancel(motivo="Feriado", observacao="Ponte"))

    assert cancelada.status == AulaStatus.CANCELADA.value
    assert cancelada.qr_token is None and cancelada.qr_expires_at is None
    assert cancelada.motivo_cancelamento == "Feriado"

    again = aula_crud.cancel(db, aula.id, staff)
    assert again.status == AulaStatus.CANCELADA.value
    assert again.motivo_cancelamento == "Feriado"


def test_cancel_rejects_ended(db, factory, cenario):
    _, staff, turma = cenario
    aula = factory.aula(turma, status=AulaStatus.ENCERRADA)
    with pytest.raises(Conflict) as exc:
        aula_crud.cancel(db, aula.id, staff)
    assert exc.value.code == "AULA_ENCERRADA"


def test_soft_delete_and_restore(db, factory, cenario):
    _, staff, turma = cenario
    aula = factory.aula(turma, dt.datetime(2025, 2, 1, 12, 0, tzinfo=UTC))
    aula_crud.issue_qr_code(db, aula.id, staff)

    aula_crud.soft_delete(db, aula.id, staff)
    db.refresh(aula)
    assert aula.deleted_at is not None
    assert aula.qr_token is None and aula.qr_expires_at is None
    with pytest.raises(NotFound):
        aula_crud.get_detail(db, aula.id, staff)

    restored = aula_crud.restore(db, aula.id, staff)
    assert restored.deleted_at is None


def test_restore_conflicts_when_slot_taken(db, factory, cenario):
    _, staff, turma = cenario
    inicio = dt.datetime(2025, 2, 1, 12, 0, tzinfo=UTC)
    antiga = factory.aula(turma, inicio)
    aula_crud.soft_delete(db, antiga.id, staff)
    factory.aula(turma, inicio)

    with pytest.raises(Conflict) as exc:
        aula_crud.restore(db, antiga.id, staff)
    assert exc.value.code == "AULA_DUPLICADA"


def test_restore_requires_deleted(db, factory, cenario):
    _, staff, turma = cenario
    aula = factory.aula(turma)
    with pytest.raises(Conflict) as exc:
        aula_crud.restore(db, aula.id, staff)
    assert exc.value.code == "NAO_DELETADO"


# ---------------- listagens ----------------

def test_list_today_uses_academia_day(db, factory, cenario):
    _, staff, turma = cenario
    # 2025-01-06 em São Paulo vai de 03:00 UTC até 03:00 UTC do dia 7
    dentro = factory.aula(turma, dt.datetime(2025, 1, 7, 1, 0, tzinfo=UTC))
    factory.aula(turma, dt.datetime(2025, 1, 7, 4, 0, tzinfo=UTC))
    factory.aula(turma, dt.datetime(2025, 1, 6, 20, 0, tzinfo=UTC), status=AulaStatus.CANCELADA)

    now = dt.datetime(2025, 1, 6, 15, 0, tzinfo=UTC)
    assert [a.id for a in aula_crud.list_today(db, staff, now)] == [dentro.id]


def test_list_filters_and_tenant_scope(db, factory, cenario):
    academia, staff, turma = cenario
    outra = factory.academia()
    turma_alheia = factory.turma(outra)
    factory.aula(turma_alheia, dt.datetime(2025, 1, 6, 22, 0, tzinfo=UTC))
    minha = factory.aula(turma, dt.datetime(2025, 1, 6, 22, 0, tzinfo=UTC))
    factory.aula(turma, dt.datetime(2025, 1, 9, 22, 0, tzinfo=UTC))

    query = ListAulasQuery(**{"from": "2025-01-06", "to": "2025-01-07"})
    assert [a.id for a in aula_crud.list(db, staff, query)] == [minha.id]


def test_deleted_template_hides_its_classes(db, factory, cenario):
    _, staff, turma = cenario
    aula = factory.aula(turma, dt.datetime(2025, 1, 6, 22, 0, tzinfo=UTC))
    turma.deleted_at = dt.datetime.now(UTC)
    db.commit()

    with pytest.raises(NotFound):
        aula_crud.get_detail(db, aula.id, staff)
