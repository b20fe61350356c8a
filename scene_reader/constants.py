"""All magic numbers and configuration constants."""

FALLBACK_TEXT = "Hello, welcome to the TTS test app."   # spoken when no scene sentence applies
DEFAULT_SCENE = "default"
DEFAULT_LANGUAGE = "en-US"
DEFAULT_PITCH = 1.0
DEFAULT_RATE = 1.0
PITCH_MIN = 0.5                     # pitch multiplier lower bound
PITCH_MAX = 2.0                     # pitch multiplier upper bound (one octave up)
RATE_MIN = 0.1                      # rate multiplier lower bound
RATE_MAX = 2.0                      # rate multiplier upper bound
MAX_SPEECH_INPUT_LENGTH = 4000      # chars; longer input is truncated
TTS_RETRY_COUNT = 3                 # max synthesis attempts per utterance
TTS_RETRY_BASE_DELAY = 1.0          # seconds, base delay for exponential backoff
DEFAULT_VOICE = "en-US-AriaNeural"  # used when no voice is known for the language
PITCH_HZ_PER_UNIT = 100             # edge-tts pitch offset: 1.5x → "+50Hz"
TARGET_DBFS = -20.0                 # playback loudness after normalization
PLAYER_POLL_SECONDS = 0.05          # how often the player thread checks for stop
EVENT_POLL_SECONDS = 0.05           # how often the host drains engine callbacks
UNKNOWN_LANGUAGE_FLAG = "\U0001F310"  # 🌐
LANGUAGE_NAMES = {
    "en-US": ("English (US)", "\U0001F1FA\U0001F1F8"),
    "zh-CN": ("Chinese (Simplified)", "\U0001F1E8\U0001F1F3"),
    "zh-TW": ("Chinese (Traditional)", "\U0001F1F9\U0001F1FC"),
    "ja-JP": ("Japanese", "\U0001F1EF\U0001F1F5"),
}
VERSION = "0.1.0"
