from .summarizer import Summarizer, compute_cut_index, summarize

__all__ = ["Summarizer", "compute_cut_index", "summarize"]
