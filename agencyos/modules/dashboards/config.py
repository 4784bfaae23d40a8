# agencyos/modules/dashboards/config.py
from typing import Dict, Literal, Optional, Tuple

DASHBOARD_TYPES = Literal[
    "director", "sales", "targetologist", "pm", "smm", "videographer",
    "mobilograph", "photographer", "creative", "intern", "accountant",
]

# Checked in order; the first keyword contained in the job title wins
_KEYWORDS: Tuple[Tuple[str, Tuple[str, ...]], ...] = (
    ("director", ("ceo", "director", "владелец")),
    ("pm", ("pm", "project manager", "проджект")),
    ("smm", ("smm", "смм", "контент")),
    ("targetologist", ("targetologist", "таргетолог")),
    ("videographer", ("videographer", "видеограф")),
    ("mobilograph", ("mobilograph", "мобилограф")),
    ("photographer", ("photographer", "фотограф")),
    ("creative", ("designer", "дизайнер", "copywriter", "копирайтер")),
    ("intern", ("intern", "стажер")),
    ("accountant", ("accountant", "бухгалтер")),
    ("sales", ("sales", "manager", "менеджер")),
)

DASHBOARD_TITLES: Dict[str, str] = {
    "director": "Операционная панель директора",
    "sales": "Кабинет менеджера по продажам",
    "targetologist": "Панель таргетолога",
    "pm": "Управление проектами",
    "smm": "Панель SMM-специалиста",
    "videographer": "Рабочее место видеографа",
    "mobilograph": "Панель мобилографа",
    "photographer": "Рабочее место фотографа",
    "creative": "Рабочее место специалиста",
    "intern": "Кабинет стажёра",
    "accountant": "Панель бухгалтера",
}


def get_dashboard_type(job_title: Optional[str]) -> str:
    title = (job_title or "").lower()
    for dashboard_type, keywords in _KEYWORDS:
        if any(keyword in title for keyword in keywords):
            return dashboard_type
    return "creative"


def get_dashboard_title(dashboard_type: str) -> str:
    return DASHBOARD_TITLES.get(dashboard_type, DASHBOARD_TITLES["creative"])
