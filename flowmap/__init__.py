"""Process mapping service: layout and streamed graph reconciliation."""
