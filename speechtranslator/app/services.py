from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Optional

from speechtranslator.asr.session import TranscriptionSession
from speechtranslator.asr.whisper import FasterWhisperRecognizer
from speechtranslator.audio.mic import SoundDeviceMicSource
from speechtranslator.audio.utterances import UtteranceConfig
from speechtranslator.audio.vad import EnergyVAD
from speechtranslator.contracts import Language, Locale
from speechtranslator.live.coordinator import PipelineCoordinator
from speechtranslator.live.oracle import CapabilityOracle
from speechtranslator.nlp.translator.base import TranslationProvider
from speechtranslator.nlp.translator.factory import get_translation_provider


@dataclass(frozen=True)
class PipelineServices:
    mic: SoundDeviceMicSource
    recognizer: FasterWhisperRecognizer
    translator: TranslationProvider
    oracle: CapabilityOracle


def build_services(args: Any, logger: Optional[logging.Logger] = None) -> PipelineServices:
    mic = SoundDeviceMicSource(
        chunk_seconds=float(args.chunk_sec),
        sample_rate=int(args.sr),
        channels=int(args.channels),
        device=args.device,
    )
    recognizer = FasterWhisperRecognizer(
        model_size=str(args.model),
        vad=EnergyVAD(rms_threshold=float(args.rms_th)),
        utterances=UtteranceConfig(
            silence_chunks=int(args.silence_chunks),
            min_utter_sec=float(args.min_utter_sec),
            max_utter_sec=None if args.max_utter_sec is None else float(args.max_utter_sec),
        ),
        logger=logger,
    )
    translator = get_translation_provider(str(args.translator))
    oracle = CapabilityOracle(recognition=recognizer, translation=translator, logger=logger)
    return PipelineServices(mic=mic, recognizer=recognizer, translator=translator, oracle=oracle)


def build_coordinator(
    args: Any,
    services: PipelineServices,
    logger: Optional[logging.Logger] = None,
) -> PipelineCoordinator:
    transcription = TranscriptionSession(
        recognition=services.recognizer,
        audio=services.mic,
        logger=logger,
    )
    return PipelineCoordinator(
        transcription=transcription,
        oracle=services.oracle,
        input_locale=Locale(str(args.input_locale)),
        target_language=Language(str(args.target_language)),
        debounce_sec=max(0, int(args.debounce_ms)) / 1000.0,
        clear_transcript_on_start=bool(args.clear_transcript_on_start),
        logger=logger,
    )
