from gitanki.cli.log_reviews import main

raise SystemExit(main())
