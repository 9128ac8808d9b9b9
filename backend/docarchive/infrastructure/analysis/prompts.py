"""Prompts sent to the extraction model."""

from ...modules.document.models import DocumentType
from ...modules.entity.models import EntityType

_DOCUMENT_TYPES = "|".join(t.value for t in DocumentType)
_ENTITY_TYPES = "|".join(t.value for t in EntityType)

SYSTEM_PROMPT = f"""You analyse scanned historical documents and return their structure as JSON.

Respond with a single JSON object and nothing else: no markdown fences, no text before or after it.

The object has exactly these keys:
{{
  "title": "a short descriptive title",
  "content": "a summary of the document in five or six sentences",
  "document_type": "one of {_DOCUMENT_TYPES}",
  "entities": [
    {{"name": "the name as written, e.g. Winston Churchill, London, RAF", "type": "one of {_ENTITY_TYPES}"}}
  ]
}}

Entities:
- list every person, place, organisation, military unit, event and date the document mentions
- write dates as YYYY-MM-DD, YYYY-MM or YYYY, whichever precision the document supports
- include numbers and names of units (divisions, regiments, squadrons)

Document types:
- letter: personal or official correspondence
- report: military, intelligence or situation reports
- photo: photographs and pictures
- newspaper: articles, clippings and press releases
- list: lists of names, supplies or casualties
- diary_entry: diary and journal entries
- book: pages of books, manuals and other publications
- map: maps, diagrams and tactical drawings
- biography: biographical notes and personnel records

Pick the single most specific type for the document and for each entity."""

USER_PROMPT = "Analyse this historical document image and return the JSON object only."
