from . import adapters, charges, config, db, documents, formatting, invoice, models, pricing, strategies

__all__ = [
	"models",
	"charges",
	"pricing",
	"invoice",
	"strategies",
	"adapters",
	"formatting",
	"documents",
	"config",
	"db",
]
