from src.services.importers.csv_importer import parse_csv_flashcards
from src.services.importers.json_importer import parse_json_flashcards

__all__ = ["parse_csv_flashcards", "parse_json_flashcards"]
