"""Language context threaded through the editor components.

One ``LanguageContext`` is built at the application root and handed to the
orchestrator and synchronizer; nothing reads the UI language globally.
"""

from __future__ import annotations

from typing import Any, Dict


TRANSLATIONS: Dict[str, Dict[str, str]] = {
    "en": {
        "sectionAdded": "Section added!",
        "questionsAddedTo": "{count} questions added to \"{section}\"",
        "questionsAdded": "Questions added",
        "newQuestionsAdded": "{count} new questions added",
        "generationFailed": "Generation failed",
        "failedToGenerate": "Failed to generate survey. Please try again.",
        "inputRequired": "Input required",
        "provideDescription": "Please provide a description or upload a document",
        "sectionNameRequired": "Section name required",
        "provideSectionName": "Please provide a name for this section",
        "sectionExists": "A section named \"{section}\" already exists",
        "noFeedback": "No feedback",
        "noFeedbackDesc": "Write some feedback before applying it",
        "noQuestionsSelected": "Select at least one question",
        "feedbackApplied": "Feedback applied",
        "feedbackAppliedDesc": "The question has been updated",
        "batchResult": "{succeeded} of {total} questions updated",
        "questionNotFound": "The question is no longer available",
        "titleRequired": "Title required",
        "titleRequiredDesc": "Please give your survey a title",
        "surveySaved": "Survey published!",
        "surveySavedDesc": "\"{title}\" is live at {link}",
        "publishFailed": "Publish failed",
        "publishFailedDesc": "The survey could not be published. Please try again.",
        "templateCloned": "Template cloned",
        "templateClonedDesc": "{credits} credits debited",
        "cloneFailed": "Clone failed",
        "insufficientCredits": "Insufficient credits",
        "cannotCloneOwn": "You cannot purchase your own templates",
        "templateNotFound": "Template not found",
        "csvImported": "CSV imported",
        "csvImportedDesc": "{sections} sections and {questions} questions imported",
        "importFailed": "Import failed",
        "csvMustHaveData": "CSV file must contain data",
        "csvMissingColumns": "CSV must have Section, Question, and Type columns",
        "sectionRemoved": "Section removed",
        "hasBeenRemoved": "\"{section}\" has been removed",
        "allSectionsCleared": "All sections cleared",
        "surveyReset": "The survey has been reset",
    },
    "it": {
        "sectionAdded": "Sezione aggiunta!",
        "questionsAddedTo": "{count} domande aggiunte a \"{section}\"",
        "questionsAdded": "Domande aggiunte",
        "newQuestionsAdded": "{count} nuove domande aggiunte",
        "generationFailed": "Generazione fallita",
        "failedToGenerate": "Impossibile generare il questionario. Riprova.",
        "inputRequired": "Input richiesto",
        "provideDescription": "Fornisci una descrizione o carica un documento",
        "sectionNameRequired": "Nome sezione richiesto",
        "provideSectionName": "Inserisci un nome per questa sezione",
        "sectionExists": "Esiste già una sezione \"{section}\"",
        "noFeedback": "Nessun feedback",
        "noFeedbackDesc": "Scrivi un feedback prima di applicarlo",
        "noQuestionsSelected": "Seleziona almeno una domanda",
        "feedbackApplied": "Feedback applicato",
        "feedbackAppliedDesc": "La domanda è stata aggiornata",
        "batchResult": "{succeeded} di {total} domande aggiornate",
        "questionNotFound": "La domanda non è più disponibile",
        "titleRequired": "Titolo richiesto",
        "titleRequiredDesc": "Dai un titolo al tuo questionario",
        "surveySaved": "Questionario pubblicato!",
        "surveySavedDesc": "\"{title}\" è online su {link}",
        "publishFailed": "Pubblicazione fallita",
        "publishFailedDesc": "Impossibile pubblicare il questionario. Riprova.",
        "templateCloned": "Template clonato",
        "templateClonedDesc": "{credits} crediti addebitati",
        "cloneFailed": "Clonazione fallita",
        "insufficientCredits": "Crediti insufficienti",
        "cannotCloneOwn": "Non puoi acquistare i tuoi template",
        "templateNotFound": "Template non trovato",
        "csvImported": "CSV importato",
        "csvImportedDesc": "{sections} sezioni e {questions} domande importate",
        "importFailed": "Importazione fallita",
        "csvMustHaveData": "Il file CSV deve contenere dati",
        "csvMissingColumns": "Il CSV deve avere le colonne Section, Question e Type",
        "sectionRemoved": "Sezione rimossa",
        "hasBeenRemoved": "\"{section}\" è stata rimossa",
        "allSectionsCleared": "Tutte le sezioni eliminate",
        "surveyReset": "Il questionario è stato reimpostato",
    },
}

FALLBACK_LANGUAGE = "en"


class LanguageContext:
    def __init__(self, language: str = "it") -> None:
        self._language = FALLBACK_LANGUAGE
        self.set_language(language)

    @property
    def language(self) -> str:
        return self._language

    def set_language(self, language: str) -> None:
        code = (language or "").split("-")[0].lower()
        self._language = code if code in TRANSLATIONS else FALLBACK_LANGUAGE

    def translate(self, key: str, **params: Any) -> str:
        table = TRANSLATIONS[self._language]
        template = table.get(key) or TRANSLATIONS[FALLBACK_LANGUAGE].get(key) or key
        try:
            return template.format(**params)
        except (KeyError, IndexError):
            return template

    t = translate
