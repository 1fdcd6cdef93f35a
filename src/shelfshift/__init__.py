# ABOUTME: shelfshift moves library entries between content providers.
# ABOUTME: Subpackages: sources (providers), db (storage), migration (engine), cli.
