from .audio_record import AudioRecord

__all__ = ["AudioRecord"]
