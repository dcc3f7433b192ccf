# Title parsing
# A name: space-separated tokens of letters (accented included), digits, '&',
# '.', '-'. The first token starts with a letter or '&'. Patterns using it match
# case-insensitively, the captured name is uppercased afterwards.
_TOKEN = r"[A-ZÀ-Ý0-9&][A-ZÀ-Ý0-9&.\-]*"
_NAME = rf"(?P<name>[A-ZÀ-Ý&][A-ZÀ-Ý0-9&.\-]*(?:[ \t]+{_TOKEN})*)(?=\s|\(|$)"

# Order matters - first match wins, a rejected match is not retried further down
TITLE_PATTERNS = (
    # 122º WCB / 17º AMZ (IMPORTAÇÃO) / 3°.1 ACME
    (rf"(?i)^(?P<ref>\d+)\s*[º°](?:\.\d+)?\s*{_NAME}", "ordinal"),
    # 45 - ACME / 45 – ACME
    (rf"(?i)^(?P<ref>\d+)\s*[-–]\s*{_NAME}", "hyphen"),
    # 45 ACME
    (rf"(?i)^(?P<ref>\d+)\s+{_NAME}", "space"),
    # EXPOFRUT (IMPORTAÇÃO DIRETA 01.2025)
    (rf"(?i)^{_NAME}(?:\s*\(.*\))?", "company_first"),
    # anything with a run of 3+ uppercase letters, case-sensitive
    (r"(?P<name>[A-ZÀ-Ý]{3,})", "fallback"),
)

TITLE_STOP_WORDS = frozenset(
    {"PO", "REF", "PROCESSO", "CONTAINER", "CNTR", "BL", "AWB", "NAVIO", "VESSEL"}
)

UNKNOWN_COMPANY_SENTINELS = frozenset({"UNKNOWN", "NÃO_IDENTIFICADO", "NAO_IDENTIFICADO"})

# Field alias table: canonical field -> ordered synonym keys.
# Synonyms are written in normalized form (no accents, lowercase, '_' separators).
# Keys also match by substring containment both ways, so no synonym may be a
# substring of an unrelated field name, nor contain a likely short key: bare
# "eta", "bl", "port" and "cia" are left out and still resolve through the
# longer entries that contain them; "responsible" would swallow a "BL" key.
ALIAS_TABLE: dict[str, tuple[str, ...]] = {
    "exporter": ("exportador", "exporter", "shipper", "consignor", "fornecedor"),
    "carrier_company": (
        "armador",
        "cia_de_transporte",
        "companhia",
        "shipping_company",
        "linha_maritima",
        "carrier",
        "shipping_line",
    ),
    "vessel": (
        "navio",
        "vessel",
        "nome_do_navio",
        "nome_navio",
        "vessel_name",
        "embarcacao",
        "ship_name",
    ),
    "bill_of_lading": (
        "n_bl_awb",
        "bl_awb",
        "awb",
        "bill_of_lading",
        "conhecimento",
        "bl_number",
        "master_bl",
        "house_bl",
    ),
    "terminal": (
        "terminal",
        "porto",
        "terminal_porto",
        "porto_destino",
        "porto_descarga",
        "discharge_port",
        "pod",
    ),
    "etd": ("etd", "data_embarque", "sailing_date", "sailing", "partida", "departure"),
    "eta": ("eta_prevista", "data_chegada", "chegada", "previsao_chegada", "arrival", "arrival_date"),
    "freetime_end": (
        "fim_do_freetime",
        "fim_freetime",
        "freetime",
        "free_time",
        "prazo_freetime",
        "free_time_end",
        "prazo_livre",
    ),
    "storage_end": ("fim_da_armazenagem", "fim_armazenagem", "armazenagem", "storage_end"),
    "responsible": (
        "responsavel",
        "encarregado",
        "coordenador",
        "responsavel_operacao",
        "operation_manager",
    ),
    "customs_broker": (
        "despachante",
        "despachante_aduaneiro",
        "customs_broker",
        "customs_agent",
        "dispatcher",
        "broker",
    ),
    "transporter": ("transportadora", "transportador", "transporter", "trucker"),
    "forwarder": ("forwarder", "freight_forwarder", "agente_de_carga", "agente_carga", "transitario"),
    "commodity": ("commodity", "mercadoria", "produto", "produtos", "goods"),
    "products": ("produto", "produtos", "products", "product", "mercadoria", "commodity"),
    "containers": ("cntr", "container", "containers", "conteiner", "conteineres"),
    "invoice": ("invoice", "invoices", "commercial_invoice", "fatura"),
    "regulatory_agencies": (
        "orgaos_anuentes",
        "orgao_anuente",
        "anuentes",
        "anuente",
        "regulatory_agencies",
        "regulatory",
    ),
    "currency": ("moeda", "currency"),
    "value": ("valor", "value", "amount", "preco", "price"),
    "status": ("status", "situacao", "status_operacional"),
    "stage": ("etapa", "fase", "stage", "estagio"),
    "company": ("empresa", "company"),
    "fiscal_benefit": ("beneficio_fiscal", "fiscal_benefit"),
    "advance": ("adiantamento", "advance"),
    "services": ("servicos", "services"),
    "priority": ("prioridade", "priority"),
    "channel": ("canal", "channel"),
}

# Free-text notes: one key per line-anchored pattern, first match per key wins.
NOTES_PATTERNS = (
    ("armador", r"^[ \t]*(?:armador|shipping line|companhia)[: \t]+(.+?)[ \t]*$"),
    ("navio", r"^[ \t]*(?:navio|vessel|m\.?v\.?)[: \t]+(.+?)[ \t]*$"),
    ("exportador", r"^[ \t]*(?:exportador|exporter|shipper)[: \t]+(.+?)[ \t]*$"),
    ("terminal", r"^[ \t]*(?:terminal|porto)[: \t]+(.+?)[ \t]*$"),
    ("etd", r"^[ \t]*(?:etd|embarque)[: \t]+(.+?)[ \t]*$"),
    ("eta", r"^[ \t]*(?:eta|chegada)[: \t]+(.+?)[ \t]*$"),
    ("bl_awb", r"^[ \t]*(?:bl|awb|bl/awb|conhecimento)[: \t]+(.+?)[ \t]*$"),
    ("container", r"^[ \t]*(?:containers?|cntr)[: \t]+(.+?)[ \t]*$"),
    ("produto", r"^[ \t]*(?:produtos?|mercadoria|commodity)[: \t]+(.+?)[ \t]*$"),
    ("despachante", r"^[ \t]*(?:despachante)[: \t]+(.+?)[ \t]*$"),
    ("invoice", r"^[ \t]*(?:invoice|fatura)[: \t]+(.+?)[ \t]*$"),
    ("orgaos_anuentes", r"^[ \t]*(?:anuentes?|[óo]rg[ãa]os anuentes)[: \t]+(.+?)[ \t]*$"),
)

ARRAY_SEPARATORS = r"[,;\n|/]"

# Status
STATUS_IN_PROGRESS = "Em Progresso"
STATUS_COMPLETED = "Concluído"
STATUS_TO_SHIP = "A Embarcar"
STATUS_DELAYED = "Atrasado"
STATUS_IN_TRANSIT = "Em Trânsito"
STATUS_CANCELLED = "Cancelado"

STATUS_ALIASES: dict[str, str] = {
    "em_progresso": STATUS_IN_PROGRESS,
    "em_andamento": STATUS_IN_PROGRESS,
    "andamento": STATUS_IN_PROGRESS,
    "in_progress": STATUS_IN_PROGRESS,
    "concluido": STATUS_COMPLETED,
    "finalizado": STATUS_COMPLETED,
    "completed": STATUS_COMPLETED,
    "done": STATUS_COMPLETED,
    "a_embarcar": STATUS_TO_SHIP,
    "aguardando_embarque": STATUS_TO_SHIP,
    "atrasado": STATUS_DELAYED,
    "delayed": STATUS_DELAYED,
    "em_transito": STATUS_IN_TRANSIT,
    "in_transit": STATUS_IN_TRANSIT,
    "cancelado": STATUS_CANCELLED,
    "cancelled": STATUS_CANCELLED,
    "canceled": STATUS_CANCELLED,
}

MARITIME_STAGES = (
    "Abertura do Processo",
    "Pré Embarque",
    "Rastreio da Carga",
    "Chegada da Carga",
    "Entrega",
    "Fechamento",
    "Processos Finalizados",
)
STAGE_FINISHED = "Processos Finalizados"

UNASSIGNED_RESPONSIBLE = "Não atribuído"

KNOWN_REGULATORY_AGENCIES = ("ANVISA", "IBAMA", "INMETRO", "ANEEL", "ANP", "MAPA")

# Metrics timelines
DATE_FORMATS = (
    "%Y-%m-%d",
    "%d/%m/%Y",
    "%Y/%m/%d",
    "%d.%m.%Y",
    "%Y.%m.%d",
    "%d-%m-%Y",
)
TIMELINE_MAX_BUCKETS = 12
