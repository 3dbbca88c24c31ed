"""
Emission Lens assistant logic: chat prompt, LLM calls and web search.
Used by the Flask app; emissions numbers come from EmissionsService.
"""
from functools import lru_cache
import logging
from typing import Dict, List, Optional, Tuple
from urllib.parse import urlparse

import requests

from settings import Settings

# Optional heavy deps (pip install .[local-llm])
try:
    from transformers import AutoTokenizer, AutoModelForSeq2SeqLM
    import torch
    _HAS_TRANSFORMERS = True
except ImportError:
    _HAS_TRANSFORMERS = False

logger = logging.getLogger(__name__)

MAX_MESSAGE_CHARS = 2000
MAX_HISTORY = 20
SEARCH_RESULTS = 5
SERPER_URL = "https://google.serper.dev/search"

# ---------------------------------------------------------
# Models (Ollama → fallback to FLAN-T5)
# ---------------------------------------------------------
@lru_cache(maxsize=1)
def load_models():
    if not _HAS_TRANSFORMERS:
        raise RuntimeError("transformers/torch not installed")
    tokenizer = AutoTokenizer.from_pretrained("google/flan-t5-small")
    model = AutoModelForSeq2SeqLM.from_pretrained("google/flan-t5-small")
    return tokenizer, model


def have_ollama(settings: Settings) -> bool:
    try:
        r = requests.get(f"{settings.ollama_host}/api/tags", timeout=5)
        return r.status_code == 200
    except requests.RequestException:
        return False


def ollama_generate(prompt: str, settings: Settings, timeout: int = 60, temp: float = 0.7) -> str:
    resp = requests.post(f"{settings.ollama_host}/api/generate",
                         json={"model": settings.ollama_model, "prompt": prompt, "stream": False,
                               "options": {"temperature": temp}},
                         timeout=timeout)
    resp.raise_for_status()
    return resp.json()["response"]


def provider_name(settings: Settings) -> str:
    if have_ollama(settings):
        return "ollama"
    if _HAS_TRANSFORMERS:
        return "flan-t5"
    return "none"


def llm_complete(prompt: str, settings: Settings, max_new_tokens: int = 300, temp: float = 0.7) -> Tuple[str, str]:
    """Complete ``prompt``; returns (text, provider name)."""
    if have_ollama(settings):
        return ollama_generate(prompt, settings, temp=temp), "ollama"
    tokenizer, model = load_models()
    inputs = tokenizer(prompt, return_tensors="pt", truncation=True, max_length=512)
    with torch.no_grad():
        outputs = model.generate(**inputs, max_new_tokens=max_new_tokens, temperature=temp, do_sample=temp > 0.0)
    return tokenizer.decode(outputs[0], skip_special_tokens=True), "flan-t5"

# ---------------------------------------------------------
# Chat assistant
# ---------------------------------------------------------
SYSTEM_PROMPT = """You are an environmental analyst assistant for the Emission Lens dashboard.
Only answer questions about greenhouse-gas emissions, climate and the environment.
If asked about anything else, politely decline and ask the user to focus on environmental topics.
Use the live data below when it is relevant and say when a number is an estimate.

{data_context}"""

CONTEXT_UNAVAILABLE = ("Note: Real-time emissions data is temporarily unavailable. "
                       "Answer based on general environmental knowledge.")

ERROR_MESSAGES = {
    "not_configured": "Our AI assistant is currently unavailable. Please try again later.",
    "default": "Sorry, I couldn't process your request right now. Please try again in a moment.",
}


def build_data_context(service, year: int = 2023) -> str:
    """Summarize live Climate TRACE numbers for the system prompt."""
    data = service.get_country_emissions({"since": year, "to": year})
    if data.get("apiStatus") != "live":
        return CONTEXT_UNAVAILABLE
    regional = service.get_regional_emissions({"since": year, "to": year})
    top = data["topCountries"][:10]
    lines = [
        "Data Source: Climate TRACE (Real-time API)",
        f"Data Year: {data['year']}",
        f"Last Updated: {data['lastUpdated']}",
        "",
        f"Global CO2 Emissions: {data['worldTotals']['co2']:,} Million Tonnes",
        f"Total Countries Tracked: {len(data['countries'])}",
        "",
        "Top 10 Emitting Countries:",
    ]
    for i, c in enumerate(top, 1):
        lines.append(f"{i}. {c['name']} ({c['country']}): {c['emissions']['co2']:,} MT CO2 "
                     f"({c['share']:.1f}% of global)")
    lines += ["", "Regional Breakdown:"]
    lines += [f"- {r['name']}: {r['emissions']:,} MT ({r['percentage']}%)" for r in regional["regions"]]
    return "\n".join(lines)


def clean_history(history) -> List[Dict[str, str]]:
    if not isinstance(history, list):
        return []
    valid = [h for h in history
             if isinstance(h, dict) and isinstance(h.get("role"), str) and isinstance(h.get("content"), str)]
    return valid[-MAX_HISTORY:]


def build_chat_prompt(system_prompt: str, history: List[Dict[str, str]], message: str) -> str:
    turns = [system_prompt, ""]
    for h in history:
        who = "Assistant" if h["role"] == "assistant" else "User"
        turns.append(f"{who}: {h['content']}")
    turns.append(f"User: {message}")
    turns.append("Assistant:")
    return "\n".join(turns)


def chat_reply(service, message: str, history=None, settings: Optional[Settings] = None) -> Dict[str, str]:
    """Answer ``message`` with live emissions context. Never raises for LLM failures."""
    settings = settings or Settings()
    system_prompt = SYSTEM_PROMPT.format(data_context=build_data_context(service))
    prompt = build_chat_prompt(system_prompt, clean_history(history), message)
    try:
        text, source = llm_complete(prompt, settings, max_new_tokens=1200, temp=0.7)
    except RuntimeError as e:
        logger.warning("No LLM available: %s", e)
        return {"response": ERROR_MESSAGES["not_configured"], "source": "unavailable"}
    except (requests.RequestException, KeyError, ValueError) as e:
        logger.warning("LLM call failed: %s", e)
        return {"response": ERROR_MESSAGES["default"], "source": "unavailable"}
    text = (text or "").strip()
    if not text:
        return {"response": ERROR_MESSAGES["default"], "source": "unavailable"}
    return {"response": text, "source": source}


def ai_status(settings: Optional[Settings] = None) -> dict:
    settings = settings or Settings()
    name = provider_name(settings)
    return {"available": name != "none", "provider": name, "providers": ["ollama", "flan-t5"]}

# ---------------------------------------------------------
# Web search (Serper, else curated results)
# ---------------------------------------------------------
CURATED_RESULTS = [
    {
        "title": "Global Carbon Emissions Reach New Record in 2024 - IEA Report",
        "snippet": "The International Energy Agency reports that global CO2 emissions from energy reached 37.4 billion tonnes in 2024, a 1.1% increase from previous year despite growth in renewable energy deployment.",
        "link": "https://www.iea.org/reports/co2-emissions-2024",
        "source": "iea.org",
        "keywords": ["global", "carbon", "energy", "report", "2024"],
    },
    {
        "title": "Manufacturing Industry Commits to Net Zero by 2050 - UN Climate",
        "snippet": "Major manufacturing companies representing 30% of global industrial emissions have signed the UN's Industry Transition Accord, pledging carbon neutrality by 2050.",
        "link": "https://unfccc.int/news/industry-transition-accord",
        "source": "unfccc.int",
        "keywords": ["manufacturing", "industry", "net zero", "2050"],
    },
    {
        "title": "Electric Vehicle Sales Surge: Transportation Emissions Peak - Bloomberg",
        "snippet": "Global EV sales exceeded 17 million units in 2024, leading analysts to predict transportation emissions may have peaked. Electrification accelerates across all transport modes.",
        "link": "https://www.bloomberg.com/ev-outlook-2024",
        "source": "bloomberg.com",
        "keywords": ["transport", "electric", "vehicle", "ev"],
    },
    {
        "title": "Agriculture Sector Innovations Cut Methane Emissions 15% - Nature",
        "snippet": "New farming techniques and feed additives have reduced agricultural methane emissions by 15% in participating regions, offering hope for one of the hardest-to-decarbonize sectors.",
        "link": "https://www.nature.com/articles/agriculture-methane",
        "source": "nature.com",
        "keywords": ["agriculture", "methane", "farming"],
    },
    {
        "title": "Carbon Capture Technology Reaches Commercial Scale - Reuters",
        "snippet": "The world's largest direct air capture facility began operations in Texas, capable of removing 500,000 tonnes of CO2 annually. Costs have dropped 60% since 2020.",
        "link": "https://www.reuters.com/carbon-capture-commercial",
        "source": "reuters.com",
        "keywords": ["carbon capture", "technology", "dac"],
    },
    {
        "title": "European Green Deal Progress Report Shows 23% Emission Reduction",
        "snippet": "The European Commission releases mid-term review showing EU emissions have fallen 23% below 1990 levels, putting the bloc on track for 2030 targets.",
        "link": "https://ec.europa.eu/green-deal-progress",
        "source": "ec.europa.eu",
        "keywords": ["europe", "eu", "green deal", "reduction"],
    },
    {
        "title": "Renewable Energy Now Cheapest Option in Most Markets - IRENA",
        "snippet": "Solar and wind power are now the most cost-effective electricity sources in markets covering 90% of global population, accelerating the energy transition.",
        "link": "https://www.irena.org/costs-2024",
        "source": "irena.org",
        "keywords": ["renewable", "solar", "wind", "energy", "cost"],
    },
    {
        "title": "Building Sector Emissions: The Hidden Climate Challenge - UNEP",
        "snippet": "Buildings account for 37% of energy-related emissions. New report outlines strategies for retrofitting existing structures and ensuring new construction is net-zero.",
        "link": "https://www.unep.org/buildings-emissions",
        "source": "unep.org",
        "keywords": ["building", "construction", "retrofit"],
    },
]


def _domain(url: str) -> str:
    try:
        return urlparse(url).netloc.replace("www.", "")
    except ValueError:
        return ""


def curated_results(query: str, limit: int = SEARCH_RESULTS) -> List[Dict]:
    """Curated articles matching ``query``; all of them when nothing matches."""
    q = (query or "").lower()
    matched = [r for r in CURATED_RESULTS
               if any(k in q for k in r["keywords"]) or q in r["title"].lower() or q in r["snippet"].lower()]
    picked = matched or CURATED_RESULTS
    return [{k: r[k] for k in ("title", "snippet", "link", "source")} for r in picked[:limit]]


def serper_search(query: str, api_key: str, limit: int = SEARCH_RESULTS) -> List[Dict]:
    r = requests.post(SERPER_URL,
                      headers={"X-API-KEY": api_key, "Content-Type": "application/json"},
                      json={"q": f"{query} emissions climate environment", "num": limit},
                      timeout=12)
    r.raise_for_status()
    out = []
    for item in r.json().get("organic") or []:
        link = (item.get("link") or "").strip()
        if not link:
            continue
        out.append({"title": item.get("title", ""), "snippet": item.get("snippet", ""),
                    "link": link, "source": _domain(link)})
    return out


def search_emissions_news(query: str, settings: Optional[Settings] = None) -> Dict:
    """Search the web for emissions news. Returns {results, source}."""
    settings = settings or Settings()
    query = (query or "").strip()[:200]
    key = settings.serper_api_key or ""
    if len(key) > 20:
        try:
            return {"results": serper_search(query, key), "source": "serper"}
        except (requests.RequestException, ValueError) as e:
            logger.warning("Serper search failed, using curated results: %s", e)
    return {"results": curated_results(query), "source": "demo"}
