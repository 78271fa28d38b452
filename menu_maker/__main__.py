from menu_maker.app import main

raise SystemExit(main())
