from dbchain.cli import main

raise SystemExit(main())
