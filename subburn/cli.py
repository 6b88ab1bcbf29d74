"""Command-Line Interface handler for SubBurn."""

import argparse
import logging
import sys
from typing import Optional, Sequence

from .config_loader import ConfigLoader
from .log_setup import setup_logging
from .audio_extractor import AudioExtractor
from .compression import list_profiles
from .concatenator import ClipConcatenator
from .media_tools import MediaTools
from .progress import TqdmProgressSink
from .segment_renderer import SegmentRenderer
from .subtitle_formatter import SRTFormatter
from .subtitle_generator import SubtitleGenerator
from .subtitle_table import SubtitleTable
from .transcriber import Transcriber
from .video_processor import VideoProcessor
from .exceptions import SubBurnError, ConfigurationError

logger = logging.getLogger(__name__) # Get logger for this module

class CLIHandler:
    """Parses arguments and dispatches SubBurn commands."""

    def __init__(self):
        self.parser = self._create_parser()

    def _create_parser(self) -> argparse.ArgumentParser:
        """Creates the argument parser for the CLI."""
        parser = argparse.ArgumentParser(
            description="SubBurn: transcribe videos into editable subtitle CSVs and burn them in.",
            formatter_class=argparse.ArgumentDefaultsHelpFormatter # Show defaults in help
        )
        parser.add_argument(
            "-c", "--config",
            default="config.yaml",
            help="Path to the configuration YAML file."
        )
        parser.add_argument(
            "--temp-dir",
            default=None, # Default taken from config file
            help="Override the temporary directory specified in the config file."
        )
        parser.add_argument(
            "--log-level",
            default="INFO",
            choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
            help="Set the logging level for console and file output."
        )
        subparsers = parser.add_subparsers(dest="command", required=True)

        proxy = subparsers.add_parser("proxy", help="Create a 480p analysis copy of a video.")
        proxy.add_argument("-v", "--video", required=True, help="Source video.")
        proxy.add_argument("-o", "--output", required=True, help="Path of the analysis copy.")

        analyze = subparsers.add_parser("analyze", help="Transcribe a video into a subtitle CSV.")
        analyze.add_argument("-v", "--video", required=True, help="Video to transcribe (analysis copy recommended).")
        analyze.add_argument("-o", "--csv", required=True, help="Path of the subtitle CSV to write.")
        analyze.add_argument("--start", default=None, help="Window start (H:MM:SS.mmm, M:SS.mmm or SS.mmm).")
        analyze.add_argument("--end", default=None, help="Window end.")
        analyze.add_argument("--backend", default=None, choices=["openai", "whisper"], help="Override transcription_backend.")
        analyze.add_argument("--device", default=None, choices=["cuda", "cpu"], help="Override the Whisper device.")

        fill = subparsers.add_parser("fill-gaps", help="Insert blank rows into gaps of a subtitle CSV.")
        fill.add_argument("csv", help="Subtitle CSV to update.")
        fill.add_argument("-o", "--output", default=None, help="Write here instead of updating in place.")

        render = subparsers.add_parser("render", help="Burn a subtitle CSV into a video.")
        render.add_argument("-v", "--video", required=True, help="Source video (full quality).")
        render.add_argument("-s", "--csv", required=True, help="Subtitle CSV.")
        render.add_argument("-o", "--output-dir", default=None, help="Override output_dir from config.")
        render.add_argument("--compression", default=None, help="Compression profile (high, medium, low).")
        render.add_argument("--font", default=None, help="Caption font name.")
        render.add_argument("--workers", type=int, default=None, help="Segments rendered in parallel.")

        crop = subparsers.add_parser("crop", help="Cut a time range out of a video without subtitles.")
        crop.add_argument("-v", "--video", required=True, help="Source video.")
        crop.add_argument("--start", default=None, help="Range start; empty means the beginning.")
        crop.add_argument("--end", default=None, help="Range end; empty means the end of the video.")
        crop.add_argument("-o", "--output-dir", default=None, help="Override output_dir from config.")

        subparsers.add_parser("profiles", help="List compression profiles.")
        return parser

    def _build_transcriber(self, config: dict) -> Transcriber:
        backend = config.get('transcription_backend', 'openai')
        if backend == 'whisper':
            from .transcriber import WhisperTranscriber
            device = config.get('device', 'cuda')
            return WhisperTranscriber(
                model_name=config.get('whisper_model', 'medium'),
                device=device,
                fp16=config.get('whisper_fp16', True) if device == 'cuda' else False,
                language=config.get('language'),
            )
        from .openai_transcriber import OpenAITranscriber
        return OpenAITranscriber(
            api_key=config.get('openai_api_key'),
            model=config.get('openai_model', 'whisper-1'),
            language=config.get('language'),
            max_attempts=config['max_attempts'],
            ffmpeg_path=config.get('ffmpeg_path'),
            ffprobe_path=config.get('ffprobe_path'),
        )

    def _build_processor(self, config: dict) -> VideoProcessor:
        renderer = SegmentRenderer(
            compression_level=config['compression_level'],
            ffmpeg_path=config.get('ffmpeg_path'),
            formatter=SRTFormatter(max_chars_per_line=config['max_chars_per_line']),
            font=config['subtitle_font'],
            font_size=config['subtitle_font_size'],
            max_attempts=config['max_attempts'],
            base_delay=config['retry_base_delay'],
            max_workers=config['render_workers'],
        )
        return VideoProcessor(
            renderer=renderer,
            concatenator=ClipConcatenator(ffmpeg_path=config.get('ffmpeg_path')),
            temp_dir=config['temp_dir'],
        )

    def _media_tools(self, config: dict) -> MediaTools:
        return MediaTools(ffmpeg_path=config.get('ffmpeg_path'), ffprobe_path=config.get('ffprobe_path'))

    # --- Commands ---

    def _cmd_proxy(self, args, config: dict) -> None:
        self._media_tools(config).create_analysis_proxy(args.video, args.output)
        print(args.output)

    def _cmd_analyze(self, args, config: dict) -> None:
        if args.backend:
            logger.info(f"Overriding transcription_backend from config with CLI argument: {args.backend}")
            config['transcription_backend'] = args.backend
        if args.device:
             logger.info(f"Overriding device from config with CLI argument: {args.device}")
             config['device'] = args.device
        generator = SubtitleGenerator(
            config=config,
            audio_extractor=AudioExtractor(
                ffmpeg_path=config.get('ffmpeg_path'),
                compression_level=config['compression_level'],
                max_attempts=config['max_attempts'],
                base_delay=config['retry_base_delay'],
            ),
            transcriber=self._build_transcriber(config),
        )
        table = generator.generate(args.video, args.csv, start=args.start, end=args.end)
        print(f"{args.csv} ({len(table)} segments)")

    def _cmd_fill_gaps(self, args, config: dict) -> None:
        table = SubtitleTable.from_file(args.csv)
        filled = table.fill_gaps()
        filled.save(args.output or args.csv)
        print(f"{args.output or args.csv}: {len(filled) - len(table)} gap rows inserted")

    def _cmd_render(self, args, config: dict) -> None:
        if args.compression:
            config['compression_level'] = args.compression
        if args.font:
            config['subtitle_font'] = args.font
        if args.workers:
            config['render_workers'] = args.workers
        processor = self._build_processor(config)
        sink = TqdmProgressSink()
        try:
            output_path = processor.render(args.video, args.csv, args.output_dir or config['output_dir'], sink)
        finally:
            sink.close()
        print(output_path)

    def _cmd_crop(self, args, config: dict) -> None:
        sink = TqdmProgressSink(desc="Cropping")
        output_path = self._media_tools(config).crop_video(
            args.video, args.start, args.end, args.output_dir or config['output_dir'], sink
        )
        print(output_path)

    def _cmd_profiles(self, args, config: dict) -> None:
        for key, name in list_profiles():
            print(f"{key}\t{name}")

    def run(self, argv: Optional[Sequence[str]] = None) -> None:
        """Parses arguments, sets up logging, loads config, and runs the command."""
        args = self.parser.parse_args(argv)

        # --- Setup Logging ---
        log_level = getattr(logging, args.log_level.upper(), logging.INFO)

        # Temporarily setup basic logging to catch config loading errors
        setup_logging(log_level=log_level, log_dir='logs', log_file='subburn_init.log')

        # --- Load Configuration ---
        try:
            config = ConfigLoader().load_config(args.config)
        except ConfigurationError as e:
            logger.critical(f"Failed to load configuration from {args.config}: {e}", exc_info=True)
            sys.exit(1)
        except FileNotFoundError:
             logger.critical(f"Configuration file not found: {args.config}", exc_info=True)
             sys.exit(1)

        # --- Re-configure Logging with settings from Config ---
        setup_logging(log_level=log_level, log_dir=config['log_dir'], log_file=config['log_file'])

        if args.temp_dir:
            logger.info(f"Overriding temp_dir from config with CLI argument: {args.temp_dir}")
            config['temp_dir'] = args.temp_dir

        handler = getattr(self, f"_cmd_{args.command.replace('-', '_')}")
        try:
            handler(args, config)
            sys.exit(0)
        except (SubBurnError, FileNotFoundError) as e:
             # Catch errors originating from our application logic
             logger.error(f"A SubBurn error occurred: {e}")
             sys.exit(1)
        except KeyboardInterrupt:
             logger.warning("Process interrupted by user (Ctrl+C). Exiting.")
             sys.exit(1)
        except Exception as e:
             # Catch any other unexpected errors
             logger.critical(f"An unexpected critical error occurred at the top level: {e}", exc_info=True)
             sys.exit(2) # Use a different exit code for unexpected crashes


def main() -> None:
    CLIHandler().run()
