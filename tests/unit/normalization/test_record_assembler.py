"""Tests for assembling canonical trackings from raw tasks."""

from datetime import date
from typing import Optional

import pytest

from duri_tracking.schemas.tracking import (
    NumberFieldValue,
    RawExternalTask,
    TextFieldValue,
    custom_field_from_payload,
)
from duri_tracking.services.normalization.record_assembler import RecordAssembler


def _task(gid: str, title: str, fields: Optional[dict[str, str]] = None, **extra) -> RawExternalTask:
    return RawExternalTask(
        gid=gid,
        title=title,
        custom_fields=tuple(
            TextFieldValue(name=name, value=value) for name, value in (fields or {}).items()
        ),
        **extra,
    )


class TestAssembleMany:
    """Batch assembly over the shared sample tasks."""

    def test_partitions_kept_unmatched_and_skipped(
        self, assembler: RecordAssembler, sample_raw_tasks: list[RawExternalTask]
    ) -> None:
        result = assembler.assemble_many(sample_raw_tasks)

        assert [t.company_name for t in result.trackings] == ["WCB", "AMZ", "EXPOFRUT"]
        assert [u.source_id for u in result.unmatched] == ["1004"]
        assert result.unmatched[0].reason == "no_company"
        assert result.skipped == 1

    def test_resolves_custom_fields(
        self, assembler: RecordAssembler, sample_raw_tasks: list[RawExternalTask]
    ) -> None:
        tracking = assembler.assemble_many(sample_raw_tasks).trackings[0]

        assert tracking.id == "122-wcb"
        assert tracking.sequence_ref == "122"
        assert tracking.transport.exporter == "Green Farms Ltd"
        assert tracking.transport.carrier_company == "MSC"
        assert tracking.transport.vessel == "MSC AURORA"
        assert tracking.transport.containers == ["MSCU1234567", "MSCU7654321"]
        assert tracking.transport.products == ["Maçã", "Pera"]
        assert tracking.schedule.etd == "2025-02-10"
        assert tracking.schedule.eta == "15/03/2025"
        assert tracking.schedule.responsible == "Não atribuído"
        assert tracking.regulatory.agencies == ["MAPA"]
        assert tracking.status == "Em Progresso"
        assert tracking.stage == ""
        assert tracking.custom_fields["EXPORTADOR"] == "Green Farms Ltd"
        assert tracking.custom_fields["exportador"] == "Green Farms Ltd"

    def test_completed_task_with_explicit_status(
        self, assembler: RecordAssembler, sample_raw_tasks: list[RawExternalTask]
    ) -> None:
        tracking = assembler.assemble_many(sample_raw_tasks).trackings[1]

        assert tracking.status == "Concluído"
        assert tracking.stage == "Processos Finalizados"
        assert tracking.transport.terminal == "Portonave"
        assert tracking.transport.exporter == "AMZ"

    def test_notes_fill_missing_fields(
        self, assembler: RecordAssembler, sample_raw_tasks: list[RawExternalTask]
    ) -> None:
        tracking = assembler.assemble_many(sample_raw_tasks).trackings[2]

        assert tracking.transport.vessel == "MAERSK SANTOS"
        assert tracking.regulatory.agencies == ["ANVISA"]
        assert tracking.schedule.responsible == "Maria"

    def test_repeated_titles_get_unique_ids(self, assembler: RecordAssembler) -> None:
        result = assembler.assemble_many(
            [_task("1", "122º WCB"), _task("2", "122º WCB"), _task("3", "122º WCB")]
        )

        assert [t.id for t in result.trackings] == ["122-wcb", "122-wcb-2", "122-wcb-3"]


class TestFieldRules:
    """Single-record derivation rules."""

    def test_custom_fields_take_precedence_over_notes(self, assembler: RecordAssembler) -> None:
        raw = _task("1", "122º WCB", {"Navio": "FROM FIELD"}, notes="Navio: FROM NOTES")

        assert assembler.assemble(raw).transport.vessel == "FROM FIELD"

    def test_company_field_never_overrides_title(self, assembler: RecordAssembler) -> None:
        raw = _task("1", "122º WCB", {"Empresa": "OUTRA"})

        assert assembler.assemble(raw).company_name == "WCB"

    def test_products_fall_back_to_commodity(self) -> None:
        assembler = RecordAssembler(reference_date=date(2025, 1, 1))
        raw = _task("1", "122º WCB", {"Goods": "Coffee, Cocoa"})

        assert assembler.assemble(raw).transport.products == ["Coffee", "Cocoa"]

    def test_agency_mentioned_in_any_value_is_collected(self, assembler: RecordAssembler) -> None:
        raw = _task("1", "122º WCB", {"Observação": "Aguardando liberação IBAMA"})

        assert assembler.assemble(raw).regulatory.agencies == ["IBAMA"]

    def test_overdue_task_is_delayed(self, assembler: RecordAssembler) -> None:
        raw = _task("1", "122º WCB", due_date="2025-03-01")

        assert assembler.assemble(raw).status == "Atrasado"

    def test_future_due_date_is_in_progress(self, assembler: RecordAssembler) -> None:
        raw = _task("1", "122º WCB", due_date="2025-04-01")

        assert assembler.assemble(raw).status == "Em Progresso"

    def test_completion_beats_overdue(self, assembler: RecordAssembler) -> None:
        raw = _task("1", "122º WCB", due_date="2025-03-01", completed=True)

        assert assembler.assemble(raw).status == "Concluído"

    def test_unknown_explicit_status_is_kept_as_text(self, assembler: RecordAssembler) -> None:
        raw = _task("1", "122º WCB", {"Status": "Aguardando documentos"})

        assert assembler.assemble(raw).status == "Aguardando documentos"

    @pytest.mark.parametrize(
        "raw_stage, expected",
        [
            ("pre embarque", "Pré Embarque"),
            ("3 - Rastreio da Carga", "Rastreio da Carga"),
            ("Etapa desconhecida", "Etapa desconhecida"),
        ],
    )
    def test_stage_matching(self, assembler: RecordAssembler, raw_stage: str, expected: str) -> None:
        raw = _task("1", "122º WCB", {"Fase": raw_stage})

        assert assembler.assemble(raw).stage == expected

    def test_eta_and_etapa_do_not_cross(self, assembler: RecordAssembler) -> None:
        only_eta = assembler.assemble(_task("1", "122º WCB", {"ETA": "15/03/2025"}))
        only_etapa = assembler.assemble(_task("2", "122º WCB", {"Etapa": "Rastreio da Carga"}))

        assert only_eta.schedule.eta == "15/03/2025"
        assert only_eta.stage == ""
        assert only_etapa.stage == "Rastreio da Carga"
        assert only_etapa.schedule.eta == ""

    def test_assignee_beats_responsible_field(self, assembler: RecordAssembler) -> None:
        raw = _task("1", "122º WCB", {"Responsável": "João"}, assignee="Maria")

        assert assembler.assemble(raw).schedule.responsible == "Maria"

    def test_unattributable_title_returns_none(self, assembler: RecordAssembler) -> None:
        assert assembler.assemble(_task("1", "...")) is None

    def test_assembly_is_pure(self, assembler: RecordAssembler) -> None:
        raw = _task("1", "122º WCB", {"Navio": "X"})

        assert assembler.assemble(raw) == assembler.assemble(raw)


class TestCustomFieldPayload:
    """Variant selection for source custom fields."""

    def test_display_value_wins(self) -> None:
        entry = custom_field_from_payload(
            {"name": "Qtd", "display_value": "três", "number_value": 3}
        )

        assert entry.kind == "display"
        assert entry.as_text() == "três"

    def test_number_renders_without_trailing_zero(self) -> None:
        entry = custom_field_from_payload({"name": "Qtd", "number_value": 3.0})

        assert isinstance(entry, NumberFieldValue)
        assert entry.as_text() == "3"

    def test_multi_enum_names_are_joined(self) -> None:
        entry = custom_field_from_payload(
            {"name": "Anuentes", "multi_enum_values": [{"name": "MAPA"}, {"name": "ANVISA"}]}
        )

        assert entry.as_text() == "MAPA, ANVISA"

    def test_empty_field_is_dropped(self) -> None:
        assert custom_field_from_payload({"name": "Vazio", "text_value": "  "}) is None
