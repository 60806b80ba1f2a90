from .processor import CommandMatch, VoiceCommand, VoiceCommandProcessor

__all__ = ['CommandMatch', 'VoiceCommand', 'VoiceCommandProcessor']
