"""Tests for canonical field resolution by alias."""

from duri_tracking.services.normalization.field_resolver import FieldAliasResolver, split_values


class TestFieldAliasResolver:
    """Alias precedence, normalization and containment."""

    def setup_method(self) -> None:
        self.resolver = FieldAliasResolver()

    def test_synonym_order_decides_between_matching_keys(self) -> None:
        """EXPORTADOR precedes exporter in the synonym list, whatever the input order."""
        fields = {"exporter": "Second", "EXPORTADOR": "First"}

        assert self.resolver.resolve(fields, "exporter") == "First"

    def test_keys_are_compared_normalized(self) -> None:
        fields = {"Nº BL/AWB": "MEDU123456", "Navio": " MSC AURORA "}

        assert self.resolver.resolve(fields, "bill_of_lading") == "MEDU123456"
        assert self.resolver.resolve(fields, "vessel") == "MSC AURORA"

    def test_accented_keys_match_plain_synonyms(self) -> None:
        fields = {"Responsável": "Maria", "Órgãos Anuentes": "ANVISA"}

        assert self.resolver.resolve(fields, "responsible") == "Maria"
        assert self.resolver.resolve(fields, "regulatory_agencies") == "ANVISA"

    def test_key_containing_a_synonym_matches(self) -> None:
        fields = {"Exportadora": "Green Farms", "NavioPrincipal": "MSC AURORA"}

        assert self.resolver.resolve(fields, "exporter") == "Green Farms"
        assert self.resolver.resolve(fields, "vessel") == "MSC AURORA"

    def test_key_contained_in_a_synonym_matches(self) -> None:
        fields = {"BL": "MEDU123456", "ETA": "15/03/2025"}

        assert self.resolver.resolve(fields, "bill_of_lading") == "MEDU123456"
        assert self.resolver.resolve(fields, "eta") == "15/03/2025"

    def test_exact_match_wins_over_containment(self) -> None:
        fields = {"Exportadora": "Contained", "Shipper": "Exact"}

        assert self.resolver.resolve(fields, "exporter") == "Exact"

    def test_unrelated_keys_do_not_leak_by_containment(self) -> None:
        fields = {
            "Exportador": "Green Farms",
            "Etapa": "Entrega",
            "Agência": "Centro",
            "BL": "MEDU1",
        }

        assert self.resolver.resolve(fields, "terminal") == ""
        assert self.resolver.resolve(fields, "responsible") == ""
        assert self.resolver.resolve(fields, "eta") == ""
        assert self.resolver.resolve(fields, "carrier_company") == ""

    def test_containment_can_be_disabled(self) -> None:
        fields = {"ETA": "15/03/2025"}

        assert self.resolver.resolve(fields, "stage") == "15/03/2025"
        assert self.resolver.resolve(fields, "stage", containment=False) == ""

    def test_containment_matches_longer_keys(self) -> None:
        fields = {"Valor Total USD": "12000"}

        assert self.resolver.resolve(fields, "value") == "12000"

    def test_blank_values_are_ignored(self) -> None:
        fields = {"Armador": "   ", "Carrier": "MSC"}

        assert self.resolver.resolve(fields, "carrier_company") == "MSC"

    def test_missing_field_resolves_to_empty_string(self) -> None:
        assert self.resolver.resolve({"Navio": "X"}, "terminal") == ""

    def test_input_is_not_modified(self) -> None:
        fields = {"EXPORTADOR": "A"}
        snapshot = dict(fields)

        self.resolver.resolve(fields, "exporter")

        assert fields == snapshot

    def test_custom_alias_table(self) -> None:
        resolver = FieldAliasResolver({"exporter": ("remetente",)})

        assert resolver.resolve({"Remetente": "X", "Exportador": "Y"}, "exporter") == "X"

    def test_resolve_array_splits_and_deduplicates(self) -> None:
        fields = {"Container": "MSCU1, MSCU2; MSCU1\nMSCU3 | MSCU4/MSCU5"}

        assert self.resolver.resolve_array(fields, "containers") == [
            "MSCU1",
            "MSCU2",
            "MSCU3",
            "MSCU4",
            "MSCU5",
        ]


def test_split_values_handles_empty_input() -> None:
    assert split_values("") == []
    assert split_values(" , ; ") == []
