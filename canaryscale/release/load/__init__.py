from .load_generator import LoadGenerator as LoadGenerator
